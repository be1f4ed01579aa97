"""Log filters for PII masking and correlation ID injection."""

import logging
import re


class PIIFilter(logging.Filter):
    """Masks emails and Pakistani mobile numbers in log messages.

    Only the message template is rewritten; arguments passed separately
    are left to the caller.
    """

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
    # 03001234567, 0300-1234567, +92 300 1234567, 923001234567
    PHONE_PATTERN = re.compile(r"(?<![\w+])(?:\+?92[-\s]?|0)3\d{2}[-\s]?\d{7}(?!\w)")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.EMAIL_PATTERN.sub("[EMAIL]", msg)
            if any(c.isdigit() for c in msg):
                msg = self.PHONE_PATTERN.sub("[PHONE]", msg)
            record.msg = msg
        return True


class DefaultCorrelationFilter(logging.Filter):
    """Adds a placeholder correlation_id so formatters can always render it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "correlation_id", None) is None:
            record.correlation_id = "-"
        return True
