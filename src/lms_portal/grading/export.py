from __future__ import annotations

import io
from typing import Sequence

import pandas as pd

from ..assignments.model import Assignment
from ..enrollments.model import Enrollment
from ..submissions.model import Submission
from .rubric import letter_grade


def build_gradebook_frame(
    enrollments: Sequence[Enrollment],
    assignments: Sequence[Assignment],
    submissions: Sequence[Submission],
) -> pd.DataFrame:
    scores = {(s.assignment_id, s.student_id): s.final_score for s in submissions if s.final_score is not None}
    possible = sum(a.total_points for a in assignments)

    rows = []
    for e in enrollments:
        row = {"Student": e.student_name or "", "Email": e.student_email or "", "Status": e.status.value}
        earned = 0.0
        for a in assignments:
            score = scores.get((a.assignment_id, e.user_id))
            row[f"{a.title} ({a.total_points})"] = score
            earned += score or 0.0
        percentage = round(earned / possible * 100, 2) if possible else 0.0
        row["Total"] = round(earned, 2)
        row["Percentage"] = percentage
        row["Letter"] = letter_grade(percentage)
        rows.append(row)

    columns = ["Student", "Email", "Status"] + [f"{a.title} ({a.total_points})" for a in assignments] + ["Total", "Percentage", "Letter"]
    return pd.DataFrame(rows, columns=columns)


def gradebook_to_xlsx(df: pd.DataFrame, *, sheet_name: str = "Gradebook") -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return output.getvalue()
