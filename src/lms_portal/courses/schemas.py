from typing import Optional

from pydantic import BaseModel, Field


class CreateCourseRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: Optional[str] = Field(default=None, max_length=100)
    price: float = Field(default=0.0, ge=0)
    application_fee: float = Field(default=0.0, ge=0)
    slug: Optional[str] = Field(default=None, max_length=255)
    installment_plan: str = "standard"


class UpdateCourseRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    application_fee: Optional[float] = Field(default=None, ge=0)
    slug: Optional[str] = Field(default=None, max_length=255)
    installment_plan: Optional[str] = None


class RejectCourseRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class LessonRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=1)
    is_published: bool = True
