"""
Tests for `domain/normalization.py`.

Covers:
- Phone normalization heuristics (passthrough, US/Canada, Colombia, Mexico, fallback).
- Email, location and country normalization.
- Name splitting.
- SHA-256 hashing of PII.
"""

from __future__ import annotations

import hashlib

import pytest

from domain.normalization import (
    extract_names,
    hash_sha256,
    normalize_country,
    normalize_email,
    normalize_location,
    normalize_phone,
)


@pytest.mark.parametrize(
    "raw, hint, expected",
    [
        ("5512345678", None, "+525512345678"),
        ("+525512345678", None, "+525512345678"),
        ("5551234567", "US", "+15551234567"),
        ("15551234567", "usa", "+15551234567"),
        ("5551234567", "Canadá", "+15551234567"),
        ("3001234567", "Colombia", "+573001234567"),
        ("525512345678", None, "+525512345678"),
        ("(55) 1234-5678", "mx", "+525512345678"),
        ("0445512345678", None, "+525512345678"),
        ("12345", None, None),
        ("", None, None),
        (None, None, None),
        ("abc", None, None),
    ],
)
def test_normalize_phone(raw, hint, expected) -> None:
    """Verify the country-hinted E.164 heuristic chain."""

    assert normalize_phone(raw, hint) == expected


def test_normalize_phone_us_hint_with_unexpected_length_falls_through_to_mexico() -> None:
    """A US hint only applies to 10/11-digit numbers; longer ones use the fallback."""

    assert normalize_phone("005551234567", "us") == "+525551234567"


def test_normalize_phone_accepts_numbers() -> None:
    """Phone values stored as numbers are normalized like strings."""

    assert normalize_phone(5512345678) == "+525512345678"


def test_normalize_email_lowercases_and_trims() -> None:
    assert normalize_email("  John.Doe@Example.COM ") == "john.doe@example.com"
    assert normalize_email("") is None
    assert normalize_email(None) is None


def test_normalize_location_collapses_whitespace() -> None:
    assert normalize_location("  Ciudad   de\tMéxico ") == "ciudad de méxico"
    assert normalize_location("   ") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("MX", "mx"),
        ("México", "mx"),
        ("Estados Unidos", "us"),
        ("spain", "es"),
        ("Perú", "pe"),
        ("Guatemala", "gu"),
        (None, None),
    ],
)
def test_normalize_country(raw, expected) -> None:
    """Two-letter passthrough, alias lookup, truncation fallback."""

    assert normalize_country(raw) == expected


def test_extract_names_splits_first_and_rest() -> None:
    name = extract_names("  María  José   García López ")
    assert name is not None
    assert name.first_name == "María"
    assert name.last_name == "José García López"


def test_extract_names_single_token_has_no_last_name() -> None:
    name = extract_names("Cher")
    assert name is not None
    assert name.first_name == "Cher"
    assert name.last_name is None


def test_extract_names_empty() -> None:
    assert extract_names("") is None
    assert extract_names("   ") is None
    assert extract_names(None) is None


def test_hash_sha256_trims_before_hashing() -> None:
    expected = hashlib.sha256(b"a@b.com").hexdigest()
    assert hash_sha256("a@b.com") == expected
    assert hash_sha256("  a@b.com  ") == expected


def test_hash_sha256_absent_input() -> None:
    assert hash_sha256(None) is None
    assert hash_sha256("") is None
    assert hash_sha256("   ") is None
