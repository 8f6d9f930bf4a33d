"""Domain validation tests: titles, labels, dates, key prefixes and keys."""

from datetime import date

import pytest

from app.domain.exceptions import DomainValidationError, InvalidKeyError, InvalidTenantError
from app.domain.validators.work_item_validator import (
    derive_key_prefix,
    format_key,
    normalize_key_prefix,
    normalize_labels,
    normalize_title,
    validate_date_range,
    validate_key_prefix,
    validate_tenant_id,
)


def test_title_is_trimmed_and_required():
    assert normalize_title("  Fix  ") == "Fix"
    for bad in ("", "   ", None, "x" * 501):
        with pytest.raises(DomainValidationError):
            normalize_title(bad)


def test_labels_are_trimmed_deduplicated_and_capped():
    assert normalize_labels([" a", "a ", "", "b"]) == frozenset({"a", "b"})
    assert normalize_labels(None) == frozenset()
    with pytest.raises(DomainValidationError):
        normalize_labels(["a", "b", "c"], limit=2)


def test_date_range():
    validate_date_range(date(2024, 1, 1), date(2024, 1, 1))
    validate_date_range(None, date(2024, 1, 1))
    with pytest.raises(DomainValidationError):
        validate_date_range(date(2024, 1, 2), date(2024, 1, 1))


def test_key_prefix_rules():
    assert normalize_key_prefix(" my-proj ") == "MYPROJ"
    assert normalize_key_prefix("abcdefghijklmno") == "ABCDEFGHIJ"
    assert validate_key_prefix("A_1") == "A_1"
    for bad in ("", "abc", "A-B", "ABCDEFGHIJK"):
        with pytest.raises(DomainValidationError):
            validate_key_prefix(bad)


def test_derive_key_prefix_is_deterministic_with_fallback():
    assert derive_key_prefix("Payments team") == "PAYMENTSTE"
    assert derive_key_prefix("???") == "PROJ"
    assert derive_key_prefix(None) == "PROJ"


def test_format_key():
    assert format_key("ALP", 7) == "ALP-7"
    with pytest.raises(InvalidKeyError):
        format_key("ALP", 0)


def test_tenant_required():
    with pytest.raises(InvalidTenantError):
        validate_tenant_id("  ")
