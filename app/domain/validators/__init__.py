"""Domain validators. Pure validation functions."""

from app.domain.validators.work_item_validator import (
    derive_key_prefix,
    format_key,
    normalize_description,
    normalize_key_prefix,
    normalize_labels,
    normalize_title,
    parse_key,
    validate_actor_id,
    validate_date_range,
    validate_key_prefix,
    validate_tenant_id,
)

__all__ = [
    "derive_key_prefix",
    "format_key",
    "normalize_description",
    "normalize_key_prefix",
    "normalize_labels",
    "normalize_title",
    "parse_key",
    "validate_actor_id",
    "validate_date_range",
    "validate_key_prefix",
    "validate_tenant_id",
]
