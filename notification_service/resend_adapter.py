"""Resend transactional email adapter."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, List, Optional

import resend

LOGGER = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when the provider rejects or fails to accept a message."""


class ResendEmailAdapter:
    """Adapter for submitting single-recipient emails to Resend."""

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        use_stub: bool = False,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.use_stub = use_stub or not api_key
        self.sent_messages: List[Dict[str, Any]] = []

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def send_email(self, *, to: str, subject: str, html: str) -> str:
        """Send one message and return the provider's email id.

        In stub mode the message is recorded locally and a deterministic id is
        returned instead of calling the provider.
        """

        LOGGER.info(
            "resend send: use_stub=%s to=%s subject=%s",
            self.use_stub,
            to,
            subject,
        )

        params = self._build_params(to=to, subject=subject, html=html)

        if self.use_stub:
            return self._stub_send(params)

        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(params)
        except Exception as exc:
            LOGGER.error("resend send failed: to=%s error=%s", to, exc)
            raise EmailDeliveryError(str(exc)) from exc

        email_id = self._coerce_email_id(response)
        if not email_id:
            LOGGER.error("resend response missing id: %s", response)
            raise EmailDeliveryError("Email provider returned no message id")

        LOGGER.debug("resend accepted message id=%s", email_id)
        return email_id

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_params(self, *, to: str, subject: str, html: str) -> Dict[str, Any]:
        return {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }

    @staticmethod
    def _coerce_email_id(response: Any) -> Optional[str]:
        if isinstance(response, dict):
            data = response.get("data")
            if isinstance(data, dict) and data.get("id"):
                return str(data["id"])
            if response.get("id"):
                return str(response["id"])
            return None
        return getattr(response, "id", None)

    def _stub_send(self, params: Dict[str, Any]) -> str:
        self.sent_messages.append(params)
        digest = hashlib.sha1(
            f"{params['to'][0]}|{params['subject']}|{len(self.sent_messages)}".encode(
                "utf-8"
            )
        ).hexdigest()
        return f"stub-{digest[:12]}"
