from typing import Optional

from pydantic import BaseModel, Field, NaiveDatetime


class CreateAssignmentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    due_date: NaiveDatetime
    description: str = ""
    instructions: Optional[str] = None
    total_points: int = Field(default=100, ge=1, le=1000)
    allow_late_submission: bool = False
    late_penalty: Optional[float] = Field(default=None, ge=0, le=100)
    max_files: int = Field(default=1, ge=1, le=10)


class UpdateAssignmentRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    due_date: Optional[NaiveDatetime] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    total_points: Optional[int] = Field(default=None, ge=1, le=1000)
    allow_late_submission: Optional[bool] = None
    late_penalty: Optional[float] = Field(default=None, ge=0, le=100)
    max_files: Optional[int] = Field(default=None, ge=1, le=10)


class ExtensionRequest(BaseModel):
    student_id: int = Field(..., ge=1)
    new_due_date: NaiveDatetime
    reason: Optional[str] = None
