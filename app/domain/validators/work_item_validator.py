"""Validators for work item and project domain rules. Pure functions, no infrastructure or DB access."""

import re
from datetime import date
from typing import Iterable, Optional, Tuple

from app.domain.exceptions import DomainValidationError, InvalidKeyError, InvalidTenantError

# Key prefix and key format (domain constants; avoid magic numbers)
KEY_PREFIX_MAX_LENGTH = 10
KEY_PREFIX_FALLBACK = "PROJ"
DEFAULT_LABEL_LIMIT = 20
TITLE_MAX_LENGTH = 500

_KEY_PREFIX_RE = re.compile(r"^[A-Z0-9_]{1,10}$")
_KEY_RE = re.compile(r"^([A-Z0-9_]{1,10})-([1-9][0-9]*)$")
_KEY_PREFIX_STRIP_RE = re.compile(r"[^A-Z0-9_]")


def validate_tenant_id(tenant_id: Optional[str]) -> None:
    """Enforce tenant constraint: must not be empty. Raises InvalidTenantError if invalid."""
    if not tenant_id or not tenant_id.strip():
        raise InvalidTenantError("tenant_id must not be empty")


def validate_actor_id(actor_id: Optional[str]) -> None:
    """Every mutation is attributable: actor_id must not be empty."""
    if not actor_id or not actor_id.strip():
        raise DomainValidationError("actor_id must not be empty")


def normalize_title(title: Optional[str]) -> str:
    """Trim title; raise DomainValidationError when nothing is left or it is too long."""
    trimmed = (title or "").strip()
    if not trimmed:
        raise DomainValidationError("title must not be empty")
    if len(trimmed) > TITLE_MAX_LENGTH:
        raise DomainValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")
    return trimmed


def normalize_description(description: Optional[str]) -> str:
    return (description or "").strip()


def normalize_labels(labels: Optional[Iterable[str]], limit: int = DEFAULT_LABEL_LIMIT) -> frozenset:
    """
    Trim labels, drop empties and duplicates. Raises DomainValidationError when
    more than `limit` distinct labels remain.
    """
    cleaned = frozenset(label.strip() for label in (labels or ()) if label and label.strip())
    if len(cleaned) > limit:
        raise DomainValidationError(f"at most {limit} labels are allowed, got {len(cleaned)}")
    return cleaned


def validate_date_range(start_date: Optional[date], due_date: Optional[date]) -> None:
    """Start date, when both are set, must not be after the due date."""
    if start_date is not None and due_date is not None and start_date > due_date:
        raise DomainValidationError(
            f"start_date {start_date.isoformat()} is after due_date {due_date.isoformat()}"
        )


def normalize_key_prefix(raw: Optional[str]) -> str:
    """Uppercase, drop characters outside [A-Z0-9_], truncate to 10. May return an empty string."""
    return _KEY_PREFIX_STRIP_RE.sub("", (raw or "").strip().upper())[:KEY_PREFIX_MAX_LENGTH]


def validate_key_prefix(prefix: Optional[str]) -> str:
    """Return prefix if it is a well-formed key prefix. Raises DomainValidationError otherwise."""
    if not prefix or not _KEY_PREFIX_RE.match(prefix):
        raise DomainValidationError(
            f"key prefix must be 1-{KEY_PREFIX_MAX_LENGTH} characters of A-Z, 0-9 or _, got {prefix!r}"
        )
    return prefix


def derive_key_prefix(project_name: Optional[str]) -> str:
    """
    Fallback prefix for a project created without one: the normalized display
    name, or KEY_PREFIX_FALLBACK when the name has no usable characters.
    Deterministic for a given name.
    """
    return normalize_key_prefix(project_name) or KEY_PREFIX_FALLBACK


def format_key(prefix: str, sequence: int) -> str:
    """Format PREFIX-N. Sequence must be positive."""
    validate_key_prefix(prefix)
    if sequence < 1:
        raise InvalidKeyError(f"sequence must be positive, got {sequence}")
    return f"{prefix}-{sequence}"


def parse_key(key: str) -> Tuple[str, int]:
    """Split PREFIX-N into (prefix, N). Raises InvalidKeyError on malformed keys."""
    match = _KEY_RE.match((key or "").strip())
    if match is None:
        raise InvalidKeyError(f"malformed work item key {key!r}")
    return match.group(1), int(match.group(2))
