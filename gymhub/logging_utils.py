"""Logging helpers."""

import logging
import re

EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')


def mask_emails(text: str) -> str:
    return EMAIL_PATTERN.sub('[email]', text)


class EmailMaskingFilter(logging.Filter):
    """Replace email addresses in warning and error records with a placeholder."""

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            record.msg = mask_emails(record.getMessage())
            record.args = None
        return True
