from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .assessments.service import AssessmentService
from .assessments.sqlalchemy_assessment_repository import SQLAlchemyAssessmentRepository
from .assignments.service import AssignmentService
from .assignments.sqlalchemy_assignment_repository import SQLAlchemyAssignmentRepository
from .audit.service import AuditService
from .audit.sqlalchemy_audit_repository import SQLAlchemyAuditRepository
from .common.cache import TTLCache
from .common.rate_limit import RateLimiter, parse_rule
from .courses.service import CourseService
from .courses.sqlalchemy_course_repository import SQLAlchemyCourseRepository
from .dashboards.service import DashboardService
from .enrollments.service import EnrollmentService
from .enrollments.sqlalchemy_enrollment_repository import SQLAlchemyEnrollmentRepository
from .grading.calculator.per_day_calculator import PerDayPercentagePenalty
from .grading.service import GradingService
from .grading.sqlalchemy_rubric_repository import SQLAlchemyRubricRepository
from .notifications.mailer import Mailer, build_mailer
from .notifications.service import NotificationService
from .notifications.sqlalchemy_notification_repository import SQLAlchemyNotificationRepository
from .payments.paystack import PaystackClient
from .payments.service import PaymentService
from .payments.sqlalchemy_payment_repository import SQLAlchemyPaymentRepository
from .reminders.service import ReminderService
from .reminders.sqlalchemy_reminder_repository import SQLAlchemyReminderRepository
from .submissions.service import SubmissionService
from .submissions.sqlalchemy_submission_repository import SQLAlchemySubmissionRepository
from .users.service import AuthService, UserService
from .users.sqlalchemy_user_repository import SQLAlchemyUserRepository


@dataclass(frozen=True)
class Container:
    users_repo: SQLAlchemyUserRepository
    courses_repo: SQLAlchemyCourseRepository
    enrollments_repo: SQLAlchemyEnrollmentRepository
    assignments_repo: SQLAlchemyAssignmentRepository
    submissions_repo: SQLAlchemySubmissionRepository
    rubrics_repo: SQLAlchemyRubricRepository
    assessments_repo: SQLAlchemyAssessmentRepository
    notifications_repo: SQLAlchemyNotificationRepository
    reminders_repo: SQLAlchemyReminderRepository
    payments_repo: SQLAlchemyPaymentRepository
    audit_repo: SQLAlchemyAuditRepository

    cache: TTLCache
    rate_limiter: RateLimiter
    mailer: Mailer
    paystack: PaystackClient

    auth_service: AuthService
    user_service: UserService
    audit_service: AuditService
    course_service: CourseService
    enrollment_service: EnrollmentService
    notification_service: NotificationService
    reminder_service: ReminderService
    assignment_service: AssignmentService
    submission_service: SubmissionService
    grading_service: GradingService
    assessment_service: AssessmentService
    payment_service: PaymentService
    dashboard_service: DashboardService


def build_container(*, settings: Mapping[str, Any]) -> Container:
    users_repo = SQLAlchemyUserRepository()
    courses_repo = SQLAlchemyCourseRepository()
    enrollments_repo = SQLAlchemyEnrollmentRepository()
    assignments_repo = SQLAlchemyAssignmentRepository()
    submissions_repo = SQLAlchemySubmissionRepository()
    rubrics_repo = SQLAlchemyRubricRepository()
    assessments_repo = SQLAlchemyAssessmentRepository()
    notifications_repo = SQLAlchemyNotificationRepository()
    reminders_repo = SQLAlchemyReminderRepository()
    payments_repo = SQLAlchemyPaymentRepository()
    audit_repo = SQLAlchemyAuditRepository()

    cache = TTLCache(default_ttl=int(settings.get("CACHE_TTL_SECONDS", 300)))
    rate_limiter = RateLimiter(
        {
            "general": parse_rule(settings.get("RATE_LIMIT_GENERAL", "100/900")),
            "auth": parse_rule(
                settings.get("RATE_LIMIT_AUTH", "5/900"), "Too many authentication attempts, please try again later."
            ),
            "payment": parse_rule(
                settings.get("RATE_LIMIT_PAYMENT", "3/60"), "Too many payment requests, please wait a minute."
            ),
        }
    )
    mailer = build_mailer(
        host=settings.get("MAIL_SERVER"),
        port=int(settings.get("MAIL_PORT", 587)),
        username=settings.get("MAIL_USERNAME"),
        password=settings.get("MAIL_PASSWORD"),
        use_tls=bool(settings.get("MAIL_USE_TLS", True)),
        sender=str(settings.get("MAIL_DEFAULT_SENDER", "no-reply@lms.local")),
    )
    paystack = PaystackClient(
        str(settings.get("PAYSTACK_SECRET_KEY", "")),
        base_url=str(settings.get("PAYSTACK_BASE_URL", "https://api.paystack.co")),
        timeout=settings.get("PAYSTACK_TIMEOUT_SECONDS", 15),
    )

    auth_service = AuthService(
        users_repo,
        secret_key=str(settings["SECRET_KEY"]),
        token_max_age_seconds=int(settings.get("TOKEN_MAX_AGE_SECONDS", 7 * 24 * 3600)),
    )
    user_service = UserService(users_repo, cache)
    audit_service = AuditService(audit_repo)
    course_service = CourseService(courses_repo, cache)
    enrollment_service = EnrollmentService(enrollments_repo, courses_repo)
    notification_service = NotificationService(notifications_repo, users_repo, enrollments_repo, mailer)
    reminder_service = ReminderService(
        reminders_repo,
        assignments_repo,
        enrollments_repo,
        submissions_repo,
        notifications_repo,
        notification_service,
    )
    assignment_service = AssignmentService(
        assignments_repo, courses_repo, enrollments_repo, submissions_repo, reminder_service, notification_service
    )
    submission_service = SubmissionService(submissions_repo, assignments_repo, enrollments_repo)
    grading_service = GradingService(
        submissions_repo,
        assignments_repo,
        courses_repo,
        enrollments_repo,
        rubrics_repo,
        notification_service,
        calculator=PerDayPercentagePenalty(),
    )
    assessment_service = AssessmentService(assessments_repo, courses_repo, enrollments_repo)
    payment_service = PaymentService(
        payments_repo,
        courses_repo,
        users_repo,
        enrollment_service,
        paystack,
        notification_service,
        callback_url=f"{str(settings.get('APP_URL', '')).rstrip('/')}/payments/callback" if settings.get("APP_URL") else None,
    )
    dashboard_service = DashboardService(
        users=users_repo,
        courses=courses_repo,
        enrollments=enrollments_repo,
        assignments=assignments_repo,
        submissions=submissions_repo,
        notifications=notifications_repo,
        payments=payments_repo,
        audit=audit_repo,
        cache=cache,
    )

    return Container(
        users_repo=users_repo,
        courses_repo=courses_repo,
        enrollments_repo=enrollments_repo,
        assignments_repo=assignments_repo,
        submissions_repo=submissions_repo,
        rubrics_repo=rubrics_repo,
        assessments_repo=assessments_repo,
        notifications_repo=notifications_repo,
        reminders_repo=reminders_repo,
        payments_repo=payments_repo,
        audit_repo=audit_repo,
        cache=cache,
        rate_limiter=rate_limiter,
        mailer=mailer,
        paystack=paystack,
        auth_service=auth_service,
        user_service=user_service,
        audit_service=audit_service,
        course_service=course_service,
        enrollment_service=enrollment_service,
        notification_service=notification_service,
        reminder_service=reminder_service,
        assignment_service=assignment_service,
        submission_service=submission_service,
        grading_service=grading_service,
        assessment_service=assessment_service,
        payment_service=payment_service,
        dashboard_service=dashboard_service,
    )
