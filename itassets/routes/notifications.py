from fastapi import APIRouter

from ..schemas.notifications import EmailResult, NotificationEmailRequest
from ..services.notifications import send_notification_email

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/email", response_model=EmailResult)
def send_email(req: NotificationEmailRequest):
    return send_notification_email(req.to, req.subject, req.body, req.type)
