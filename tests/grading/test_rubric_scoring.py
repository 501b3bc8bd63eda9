from datetime import datetime

import pytest

from lms_portal.assignments.model import Assignment
from lms_portal.core.enums import EnrollmentStatus, SubmissionStatus
from lms_portal.core.exceptions import ValidationError
from lms_portal.enrollments.model import Enrollment
from lms_portal.grading.export import build_gradebook_frame
from lms_portal.grading.model import Rubric, RubricCriterion, RubricLevel
from lms_portal.grading.rubric import letter_grade, score_rubric
from lms_portal.grading.service import grade_distribution
from lms_portal.submissions.model import Submission


def _rubric() -> Rubric:
    return Rubric(
        rubric_id=1,
        assignment_id=10,
        title="Essay",
        criteria=(
            RubricCriterion(1, "Content", 3, (RubricLevel(11, "Weak", 0), RubricLevel(12, "Good", 5), RubricLevel(13, "Great", 10))),
            RubricCriterion(2, "Style", 1, (RubricLevel(21, "Weak", 0), RubricLevel(22, "Great", 4))),
        ),
    )


@pytest.mark.parametrize(
    "percentage,letter",
    [(95, "A"), (90, "A"), (89.99, "B"), (80, "B"), (70, "C"), (60, "D"), (59.9, "F"), (0, "F")],
)
def test_letter_grade_thresholds(percentage, letter):
    assert letter_grade(percentage) == letter


def test_score_rubric_is_weighted_and_scaled():
    # Content 5/10 * 3 + Style 4/4 * 1 = 2.5 of 4 weight
    assert score_rubric(_rubric(), {1: 12, 2: 22}, total_points=100) == 62.5
    assert score_rubric(_rubric(), {1: 13, 2: 22}, total_points=20) == 20.0


def test_score_rubric_requires_every_criterion():
    with pytest.raises(ValidationError):
        score_rubric(_rubric(), {1: 13}, total_points=100)


def test_score_rubric_rejects_unknown_level():
    with pytest.raises(ValidationError):
        score_rubric(_rubric(), {1: 13, 2: 99}, total_points=100)


def test_grade_distribution_buckets():
    dist = grade_distribution([100, 91, 85, 72, 65, 10])
    assert dist == {"Below 60%": 1, "60-70%": 1, "70-80%": 1, "80-90%": 1, "90-100%": 2}


def test_gradebook_frame_totals_and_letters():
    now = datetime(2026, 3, 1, 9, 0)
    assignments = [
        Assignment(1, 5, 2, "Essay", "", now, 50, True, None, 1, True, 0, now),
        Assignment(2, 5, 2, "Quiz", "", now, 50, True, None, 1, True, 0, now),
    ]
    enrollments = [
        Enrollment(1, 100, 5, EnrollmentStatus.ACTIVE, 50, now, student_name="Ann", student_email="ann@example.com"),
        Enrollment(2, 101, 5, EnrollmentStatus.ACTIVE, 0, now, student_name="Bob", student_email="bob@example.com"),
    ]
    submissions = [
        Submission(1, 1, 100, SubmissionStatus.GRADED, False, 0, 0, final_score=45.0),
        Submission(2, 2, 100, SubmissionStatus.GRADED, False, 0, 0, final_score=46.0),
        Submission(3, 1, 101, SubmissionStatus.SUBMITTED, False, 0, 0),
    ]

    df = build_gradebook_frame(enrollments, assignments, submissions)

    assert list(df.columns) == ["Student", "Email", "Status", "Essay (50)", "Quiz (50)", "Total", "Percentage", "Letter"]
    ann = df.iloc[0]
    assert ann["Total"] == 91.0
    assert ann["Letter"] == "A"
    bob = df.iloc[1]
    assert bob["Total"] == 0.0
    assert bob["Letter"] == "F"
