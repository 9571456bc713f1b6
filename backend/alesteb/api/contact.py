from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List
from html import escape
import logging
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.config import settings
from alesteb.core.errors import ExternalServiceError
from alesteb.db.session import transaction
from alesteb.models.contact import ContactMessage
from alesteb.schemas.contact import ContactCreate, ContactResponse, ContactAccepted
from alesteb.services.email import EmailSender, get_email_sender

router = APIRouter(prefix="/api/contact", tags=["contact"])

logger = logging.getLogger(__name__)


def notification_html(message: ContactMessage) -> str:
    rows = [
        ("Name", message.name),
        ("Email", message.email),
        ("Phone", message.phone),
        ("Subject", message.subject),
    ]
    fields = "".join(
        f"<p><strong>{label}:</strong> {escape(value)}</p>"
        for label, value in rows
        if value
    )
    return (
        "<h2>New contact message</h2>"
        f"{fields}"
        f"<p style=\"white-space: pre-wrap;\">{escape(message.message)}</p>"
        f"<p><small>Received {message.created_at:%Y-%m-%d %H:%M} UTC</small></p>"
    )


def confirmation_html(message: ContactMessage) -> str:
    return (
        f"<h2>Thank you for contacting us, {escape(message.name)}!</h2>"
        "<p>We have received your message and will get back to you soon.</p>"
        f"<p><strong>Subject:</strong> {escape(message.subject)}</p>"
    )


@router.post("/", response_model=ContactAccepted, status_code=201)
def submit_message(
    data: ContactCreate,
    db: Session = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """Store the message, then notify the shop; email failures do not fail the request"""
    with transaction(db):
        message = ContactMessage(**data.model_dump())
        db.add(message)

    db.refresh(message)

    recipient = settings.CONTACT_EMAIL or settings.ADMIN_EMAIL
    email_sent = False
    try:
        email_sender.send([recipient], f"New contact: {message.subject}", notification_html(message))
        email_sent = True
    except ExternalServiceError as e:
        logger.error("Contact notification for message %s not sent: %s", message.id, e)

    if email_sent:
        try:
            email_sender.send([message.email], "We have received your message", confirmation_html(message))
        except ExternalServiceError as e:
            logger.warning("Contact confirmation for message %s not sent: %s", message.id, e)

    return ContactAccepted(id=message.id, email_sent=email_sent)


@router.get("/", response_model=List[ContactResponse])
def list_messages(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    stmt = select(ContactMessage).order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
    return db.exec(stmt.offset(skip).limit(limit)).all()
