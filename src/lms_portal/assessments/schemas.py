from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.enums import QuestionType


class QuestionIn(BaseModel):
    type: QuestionType
    text: str = Field(..., min_length=1)
    points: float = Field(default=1.0, gt=0)
    options: Optional[List[str]] = None
    correct_answer: Any = None


class CreateAssessmentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    max_attempts: int = Field(default=1, ge=1, le=100)
    passing_score: float = Field(default=60.0, ge=0, le=100)
    questions: List[QuestionIn] = Field(..., min_length=1)


class AttemptRequest(BaseModel):
    # question id -> answer
    answers: Dict[str, Any] = Field(default_factory=dict)
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)


class GradeAttemptRequest(BaseModel):
    manual_score: float = Field(..., ge=0)
    feedback: Optional[str] = None
