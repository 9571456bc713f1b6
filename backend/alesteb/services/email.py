"""
Email delivery through Resend.
"""

import logging
from typing import List, Optional

import resend
from fastapi import Request

from alesteb.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "email"


class EmailSender:
    def __init__(self, api_key: Optional[str], sender: str):
        self.api_key = (api_key or "").strip()
        self.sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: List[str], subject: str, html: str) -> str:
        """Send a message and return the provider id"""
        if not self.configured:
            raise ExternalServiceError(SERVICE_NAME, "Resend API key is not configured")

        payload = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(payload)
        except Exception as e:
            logger.error("Email to %s failed: %s", to, e)
            raise ExternalServiceError(SERVICE_NAME, str(e)) from e

        message_id = response.get("id") if isinstance(response, dict) else None
        if not message_id:
            logger.error("Unexpected Resend response: %s", response)
            raise ExternalServiceError(SERVICE_NAME, "Unexpected provider response")

        logger.info("Email %s sent to %s", message_id, to)
        return message_id


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender
