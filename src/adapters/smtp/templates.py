"""Plain-text notice templates, rendered with str.format."""

from collections.abc import Mapping
from dataclasses import dataclass

from src.domain.ports import NoticeTemplate


@dataclass
class NoticeTemplates:
    CONFIRM_REGISTRATION_SUBJECT = "Confirm your registration for {event_title}"
    CONFIRM_REGISTRATION_TEXT = """
Dear {name},

Thank you for registering for {event_title}.

{event_description}

Your selections: {products}
Phone: {phone}

Please confirm your registration by visiting:
{verification_url}

If the link does not work, copy it into your browser's address bar.
"""

    VERIFICATION_REMINDER_SUBJECT = "Just a quick confirmation for {event_title}"
    VERIFICATION_REMINDER_TEXT = """
Dear {name},

You are already registered for {event_title}, but the registration has not
been confirmed yet. Please confirm it by visiting:
{verification_url}

If you think something has gone wrong, contact us at {support_email}.
"""

    ALREADY_REGISTERED_SUBJECT = "You were already registered for {event_title}"
    ALREADY_REGISTERED_TEXT = """
Dear {name},

You are already registered and confirmed for {event_title}. There is
nothing more you need to do.

If you think something has gone wrong, contact us at {support_email}.
"""

    @classmethod
    def get(cls, template: NoticeTemplate) -> tuple[str, str]:
        prefix = NoticeTemplate(template).name
        return getattr(cls, f"{prefix}_SUBJECT"), getattr(cls, f"{prefix}_TEXT")


def render(template: NoticeTemplate, data: Mapping[str, object]) -> tuple[str, str]:
    """
    Render a notice.

    Returns:
        (subject, body)

    Raises:
        KeyError: If data lacks a value the template uses
    """
    subject, text = NoticeTemplates.get(template)
    values = {key: "" if value is None else value for key, value in data.items()}
    return subject.format(**values), text.strip().format(**values) + "\n"
