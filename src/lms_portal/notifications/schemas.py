from typing import Optional

from pydantic import BaseModel


class PreferencesRequest(BaseModel):
    assignment_deadlines: Optional[bool] = None
    email_notifications: Optional[bool] = None
    reminder_time: Optional[str] = None
