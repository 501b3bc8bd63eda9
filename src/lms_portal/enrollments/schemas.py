from pydantic import BaseModel, Field


class EnrollRequest(BaseModel):
    course_id: int = Field(..., ge=1)
