"""External messaging deep links (e.g. WhatsApp click-to-chat)."""

import re
from urllib.parse import quote

import structlog

from mediconnect.config import settings
from mediconnect.core.exceptions import ValidationException

logger = structlog.get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")


class NotificationService:
    """Composes messages and deep links for channels outside the app.

    Nothing is sent or stored here; the caller opens the returned link.
    """

    @staticmethod
    def compose_greeting(patient_name: str) -> str:
        """Default first message from a doctor to a patient."""
        return f"Hello {patient_name}, this is your doctor from {settings.practice_display_name}."

    @staticmethod
    def notify_by_external_channel(phone: str, message: str) -> str:
        """
        Build a click-to-chat link for ``phone`` prefilled with ``message``.

        Args:
            phone: Phone number in any format; non-digits are stripped
            message: Message text

        Returns:
            Deep link URL

        Raises:
            ValidationException: If the phone number has no digits
        """
        digits = _NON_DIGITS.sub("", phone or "")
        if not digits:
            raise ValidationException("A phone number is required", fields=["phone"])

        url = f"{settings.external_message_base_url.rstrip('/')}/{digits}?text={quote(message, safe='')}"
        logger.info("external_message_link_created", channel="whatsapp", digits=len(digits))
        return url
