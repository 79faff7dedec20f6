from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_email(value: str) -> str:
    email = require_non_empty(value, "email").lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    return email


def require_url(value: str) -> str:
    url = require_non_empty(value, "url")
    if not url.lower().startswith(("http://", "https://")):
        raise ValidationError("url must be an http(s) URL")
    return url
