from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ValidateGradeRequest(BaseModel):
    grade: float
    feedback: Optional[str] = None


class GradeRequest(BaseModel):
    grade: Optional[float] = None
    feedback: Optional[str] = None
    return_to_student: bool = False
    reason: Optional[str] = None
    # criterion id -> level id
    rubric_selections: Optional[Dict[int, int]] = None


class BulkGradeRequest(BaseModel):
    submission_ids: List[int] = Field(..., min_length=1)
    grade: float
    feedback: Optional[str] = None
    return_to_student: bool = False


class RubricLevelIn(BaseModel):
    label: str = Field(..., min_length=1)
    points: float = Field(..., ge=0)


class RubricCriterionIn(BaseModel):
    name: str = Field(..., min_length=1)
    weight: float = Field(default=1.0, gt=0)
    levels: List[RubricLevelIn] = Field(..., min_length=1)


class RubricRequest(BaseModel):
    title: str = Field(..., min_length=1)
    criteria: List[RubricCriterionIn] = Field(..., min_length=1)
