from typing import List, Optional

from pydantic import BaseModel


class NotificationEmailRequest(BaseModel):
    # Validated by the notification service so callers get a result, not a 422
    to: List[str] = []
    subject: str = ""
    body: str = ""
    type: str


class EmailResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
