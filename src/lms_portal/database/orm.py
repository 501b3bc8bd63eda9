"""Flask-SQLAlchemy table declarations.

Enum columns store the ``.value`` of the enums in ``core.enums``. Only the
``sqlalchemy_*_repository`` modules import these classes.
"""
from __future__ import annotations

from ..common.datetime_utils import now_local
from ..extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(150), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="STUDENT")
    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    phone = db.Column(db.String(40))
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)
    last_login_at = db.Column(db.DateTime)


class PasswordResetToken(db.Model):
    __tablename__ = "password_reset_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(100))
    price = db.Column(db.Float, nullable=False, default=0.0)
    application_fee = db.Column(db.Float, nullable=False, default=0.0)
    installment_plan = db.Column(db.String(20), nullable=False, default="standard")
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    rejection_reason = db.Column(db.Text)
    instructor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)
    published_at = db.Column(db.DateTime)

    instructor = db.relationship("User", backref="courses_taught", lazy=True)
    lessons = db.relationship("Lesson", backref="course", lazy=True, cascade="all, delete-orphan")


class Lesson(db.Model):
    __tablename__ = "lessons"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text)
    position = db.Column(db.Integer, nullable=False, default=0)
    is_published = db.Column(db.Boolean, nullable=False, default=True)


class Enrollment(db.Model):
    __tablename__ = "enrollments"
    __table_args__ = (db.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    progress = db.Column(db.Integer, nullable=False, default=0)
    enrolled_at = db.Column(db.DateTime, nullable=False, default=now_local)
    completed_at = db.Column(db.DateTime)

    user = db.relationship("User", backref="enrollments", lazy=True)
    course = db.relationship("Course", backref="enrollments", lazy=True)


class LessonCompletion(db.Model):
    __tablename__ = "lesson_completions"
    __table_args__ = (db.UniqueConstraint("enrollment_id", "lesson_id", name="uq_completion_enrollment_lesson"),)

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    completed_at = db.Column(db.DateTime, nullable=False, default=now_local)


class Assignment(db.Model):
    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    instructions = db.Column(db.Text)
    due_date = db.Column(db.DateTime, nullable=False)
    total_points = db.Column(db.Integer, nullable=False, default=100)
    allow_late_submission = db.Column(db.Boolean, nullable=False, default=False)
    late_penalty = db.Column(db.Float)
    max_files = db.Column(db.Integer, nullable=False, default=1)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    graded_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)

    course = db.relationship("Course", backref="assignments", lazy=True)


class AssignmentExtension(db.Model):
    __tablename__ = "assignment_extensions"
    __table_args__ = (db.UniqueConstraint("assignment_id", "student_id", name="uq_extension_assignment_student"),)

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    new_due_date = db.Column(db.DateTime, nullable=False)
    reason = db.Column(db.Text)
    granted_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)


class Submission(db.Model):
    __tablename__ = "submissions"
    __table_args__ = (db.UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),)

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    text = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    is_late = db.Column(db.Boolean, nullable=False, default=False)
    days_late = db.Column(db.Integer, nullable=False, default=0)
    grade = db.Column(db.Float)
    original_score = db.Column(db.Float)
    final_score = db.Column(db.Float)
    feedback = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime)
    graded_at = db.Column(db.DateTime)
    graded_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    resubmission_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)

    assignment = db.relationship("Assignment", backref="submissions", lazy=True)
    student = db.relationship("User", foreign_keys=[student_id], lazy=True)


class GradingHistory(db.Model):
    __tablename__ = "grading_history"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    previous_grade = db.Column(db.Float)
    new_grade = db.Column(db.Float, nullable=False)
    previous_feedback = db.Column(db.Text)
    new_feedback = db.Column(db.Text)
    graded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    graded_at = db.Column(db.DateTime, nullable=False, default=now_local)
    reason = db.Column(db.String(255))


class Rubric(db.Model):
    __tablename__ = "rubrics"

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), unique=True, nullable=False)
    title = db.Column(db.String(200), nullable=False)

    criteria = db.relationship(
        "RubricCriterion", backref="rubric", lazy=True, cascade="all, delete-orphan", order_by="RubricCriterion.position"
    )


class RubricCriterion(db.Model):
    __tablename__ = "rubric_criteria"

    id = db.Column(db.Integer, primary_key=True)
    rubric_id = db.Column(db.Integer, db.ForeignKey("rubrics.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    weight = db.Column(db.Float, nullable=False, default=1.0)
    position = db.Column(db.Integer, nullable=False, default=0)

    levels = db.relationship(
        "RubricLevel", backref="criterion", lazy=True, cascade="all, delete-orphan", order_by="RubricLevel.points"
    )


class RubricLevel(db.Model):
    __tablename__ = "rubric_levels"

    id = db.Column(db.Integer, primary_key=True)
    criterion_id = db.Column(db.Integer, db.ForeignKey("rubric_criteria.id", ondelete="CASCADE"), nullable=False)
    label = db.Column(db.String(100), nullable=False)
    points = db.Column(db.Float, nullable=False)


class Assessment(db.Model):
    __tablename__ = "assessments"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    time_limit_minutes = db.Column(db.Integer)
    max_attempts = db.Column(db.Integer, nullable=False, default=1)
    passing_score = db.Column(db.Float, nullable=False, default=60.0)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)

    questions = db.relationship(
        "Question", backref="assessment", lazy=True, cascade="all, delete-orphan", order_by="Question.position"
    )


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    assessment_id = db.Column(db.Integer, db.ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    question_type = db.Column(db.String(30), nullable=False)
    text = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON)
    correct_answer = db.Column(db.JSON)
    points = db.Column(db.Float, nullable=False, default=1.0)
    position = db.Column(db.Integer, nullable=False, default=0)


class AssessmentAttempt(db.Model):
    __tablename__ = "assessment_attempts"

    id = db.Column(db.Integer, primary_key=True)
    assessment_id = db.Column(db.Integer, db.ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    attempt_number = db.Column(db.Integer, nullable=False)
    answers = db.Column(db.JSON, nullable=False)
    score = db.Column(db.Float, nullable=False, default=0.0)
    total_points = db.Column(db.Float, nullable=False, default=0.0)
    percentage = db.Column(db.Float, nullable=False, default=0.0)
    passed = db.Column(db.Boolean, nullable=False, default=False)
    time_spent_seconds = db.Column(db.Integer)
    manual_score = db.Column(db.Float)
    feedback = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime, nullable=False, default=now_local)
    graded_at = db.Column(db.DateTime)


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    payment_type = db.Column(db.String(30), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="NGN")
    reference = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    installment_number = db.Column(db.Integer)
    due_date = db.Column(db.DateTime)
    paid_at = db.Column(db.DateTime)
    gateway_transaction_id = db.Column(db.String(100))
    authorization_url = db.Column(db.String(500))
    is_manual = db.Column(db.Boolean, nullable=False, default=False)
    last_reminded_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)

    user = db.relationship("User", backref="payments", lazy=True)
    course = db.relationship("Course", backref="payments", lazy=True)


class Refund(db.Model):
    __tablename__ = "refunds"

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = db.Column(db.String(20), nullable=False, default="IN_APP")
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(30), nullable=False, default="SYSTEM")
    priority = db.Column(db.String(20), nullable=False, default="MEDIUM")
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    action_url = db.Column(db.String(500))
    read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime)
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local)


class NotificationSettings(db.Model):
    __tablename__ = "notification_settings"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    assignment_deadlines = db.Column(db.Boolean, nullable=False, default=True)
    email_notifications = db.Column(db.Boolean, nullable=False, default=True)
    reminder_time = db.Column(db.String(5), nullable=False, default="09:00")


class AssignmentReminder(db.Model):
    __tablename__ = "assignment_reminders"
    __table_args__ = (db.UniqueConstraint("assignment_id", "reminder_type", name="uq_reminder_assignment_type"),)

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    reminder_type = db.Column(db.String(20), nullable=False)
    scheduled_for = db.Column(db.DateTime, nullable=False, index=True)
    processed = db.Column(db.Boolean, nullable=False, default=False)
    processed_at = db.Column(db.DateTime)
    attempts = db.Column(db.Integer, nullable=False, default=0)


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, index=True)
    action = db.Column(db.String(50), nullable=False, index=True)
    resource_type = db.Column(db.String(30), nullable=False)
    resource_id = db.Column(db.String(64))
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(500))
    details = db.Column("metadata", db.JSON)
    created_at = db.Column(db.DateTime, nullable=False, default=now_local, index=True)
