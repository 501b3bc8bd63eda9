from typing import Optional

from pydantic import BaseModel


class SubmitRequest(BaseModel):
    text: Optional[str] = None
    is_draft: bool = False
