from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for route authorization and dashboards."""

    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class CourseStatus(str, Enum):
    """Course lifecycle: DRAFT -> PENDING_APPROVAL -> PUBLISHED / REJECTED -> ARCHIVED."""

    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class EnrollmentStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"
    SUSPENDED = "SUSPENDED"


class SubmissionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"
    RETURNED = "RETURNED"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    MULTIPLE_SELECT = "MULTIPLE_SELECT"
    SHORT_ANSWER = "SHORT_ANSWER"
    ESSAY = "ESSAY"


class PaymentType(str, Enum):
    APPLICATION_FEE = "APPLICATION_FEE"
    TUITION = "TUITION"
    INSTALLMENT = "INSTALLMENT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class NotificationChannel(str, Enum):
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationCategory(str, Enum):
    SYSTEM = "SYSTEM"
    COURSE = "COURSE"
    PAYMENT = "PAYMENT"
    ANNOUNCEMENT = "ANNOUNCEMENT"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ReminderType(str, Enum):
    """Deadline reminder slots relative to an assignment due date."""

    DUE_IN_48_HOURS = "48_HOUR"
    DUE_IN_24_HOURS = "24_HOUR"
    OVERDUE = "OVERDUE"


class AuditAction(str, Enum):
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_REGISTER = "USER_REGISTER"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    PASSWORD_RESET = "PASSWORD_RESET"
    COURSE_CREATE = "COURSE_CREATE"
    COURSE_UPDATE = "COURSE_UPDATE"
    COURSE_DELETE = "COURSE_DELETE"
    COURSE_APPROVE = "COURSE_APPROVE"
    COURSE_REJECT = "COURSE_REJECT"
    ENROLLMENT_CREATE = "ENROLLMENT_CREATE"
    ASSIGNMENT_CREATE = "ASSIGNMENT_CREATE"
    ASSIGNMENT_UPDATE = "ASSIGNMENT_UPDATE"
    ASSIGNMENT_DELETE = "ASSIGNMENT_DELETE"
    ASSIGNMENT_GRADE = "ASSIGNMENT_GRADE"
    ASSIGNMENT_EXTENSION = "ASSIGNMENT_EXTENSION"
    BULK_GRADE = "BULK_GRADE"
    PAYMENT_CREATE = "PAYMENT_CREATE"
    PAYMENT_VERIFY = "PAYMENT_VERIFY"
    PAYMENT_REFUND = "PAYMENT_REFUND"
    DATA_EXPORT = "DATA_EXPORT"


class ResourceType(str, Enum):
    USER = "USER"
    COURSE = "COURSE"
    ENROLLMENT = "ENROLLMENT"
    ASSIGNMENT = "ASSIGNMENT"
    SUBMISSION = "SUBMISSION"
    PAYMENT = "PAYMENT"
