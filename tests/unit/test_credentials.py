from __future__ import annotations

import pytest

from wiki_identity.domain.auth.credentials import (
    is_well_formed_email,
    normalize_user_email,
    normalize_username,
    password_exceeds_maximum_length,
    validate_new_password,
)


def test_normalize_user_email_trims_and_lowercases() -> None:
    assert normalize_user_email(email="  Alice@Example.ORG ") == "alice@example.org"


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_email_and_username_are_rejected(blank: str) -> None:
    with pytest.raises(ValueError):
        normalize_user_email(email=blank)
    with pytest.raises(ValueError):
        normalize_username(username=blank)


def test_normalize_username_preserves_case() -> None:
    assert normalize_username(username=" Alice ") == "Alice"


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("a@x.com", True),
        ("first.last@sub.example.org", True),
        ("a@x", False),
        ("no-at-sign.com", False),
        ("a b@x.com", False),
    ],
)
def test_is_well_formed_email(email: str, expected: bool) -> None:
    assert is_well_formed_email(email) is expected


@pytest.mark.parametrize(
    ("password", "confirmation", "expected"),
    [
        ("secret1", "secret1", None),
        ("", "", "password cannot be blank"),
        ("abc", "abc", "password must be at least 6 characters"),
        ("secret1", "secret2", "password and confirmation do not match"),
        ("p" * 80, "p" * 80, "password must be at most 72 bytes"),
        ("\u00e9" * 37, "\u00e9" * 37, "password must be at most 72 bytes"),
        ("p" * 72, "p" * 72, None),
    ],
)
def test_validate_new_password(password: str, confirmation: str, expected: str | None) -> None:
    assert (
        validate_new_password(
            password=password,
            password_confirmation=confirmation,
            minimum_length=6,
        )
        == expected
    )


def test_password_length_limit_counts_utf8_bytes() -> None:
    assert password_exceeds_maximum_length("p" * 72) is False
    assert password_exceeds_maximum_length("p" * 73) is True
    assert password_exceeds_maximum_length("é" * 36) is False
    assert password_exceeds_maximum_length("é" * 37) is True
