"""Brevo transactional email adapter."""

import requests
import structlog

from ordering.notification.email_port import EmailPort

logger = structlog.get_logger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoEmailAdapter(EmailPort):
    def __init__(self, api_key: str, sender: str, timeout: float = 10.0, session=None):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, to: str, subject: str, body: str) -> dict:
        payload = {
            "sender": {"email": self.sender},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": body,
        }
        try:
            response = self.session.post(
                BREVO_SEND_URL,
                json=payload,
                headers={"api-key": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("email_unreachable", error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if response.status_code >= 400:
            return {"message_id": None, "status": "failed", "error": f"HTTP {response.status_code}: {response.text}"}
        return {"message_id": response.json().get("messageId"), "status": "sent"}
