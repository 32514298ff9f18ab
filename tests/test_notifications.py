"""Tests for external messaging deep links."""

import pytest

from mediconnect.core.exceptions import ValidationException
from mediconnect.services.notification_service import NotificationService


def test_greeting_names_patient_and_practice():
    message = NotificationService.compose_greeting("Ada")

    assert message == "Hello Ada, this is your doctor from MediConnect."


def test_link_strips_non_digits_from_phone():
    url = NotificationService.notify_by_external_channel("+1 (555) 010-2030", "Hi")

    assert url == "https://wa.me/15550102030?text=Hi"


def test_link_percent_encodes_message():
    url = NotificationService.notify_by_external_channel(
        "5550100", "Hello Ada, see you at 9/10 & bring notes?"
    )

    assert url == (
        "https://wa.me/5550100?text="
        "Hello%20Ada%2C%20see%20you%20at%209%2F10%20%26%20bring%20notes%3F"
    )


@pytest.mark.parametrize("phone", ["", "   ", "n/a", None])
def test_link_requires_digits(phone):
    with pytest.raises(ValidationException) as exc_info:
        NotificationService.notify_by_external_channel(phone, "Hi")

    assert exc_info.value.fields == ["phone"]
