from __future__ import annotations

from wiki_identity.infrastructure.security.password_hasher import BcryptPasswordHasher


def test_hash_password_never_stores_plaintext_and_verifies() -> None:
    hasher = BcryptPasswordHasher(rounds=4)
    password = "super-secret-password"

    password_hash = hasher.hash_password(password)

    assert password_hash != password
    assert password not in password_hash
    assert hasher.verify_password(password=password, password_hash=password_hash) is True


def test_wrong_password_fails_verification() -> None:
    hasher = BcryptPasswordHasher(rounds=4)
    password_hash = hasher.hash_password("correct")

    assert hasher.verify_password(password="wrong", password_hash=password_hash) is False


def test_same_password_hashes_differently_per_salt() -> None:
    hasher = BcryptPasswordHasher(rounds=4)

    assert hasher.hash_password("repeat") != hasher.hash_password("repeat")


def test_malformed_hash_fails_verification() -> None:
    hasher = BcryptPasswordHasher(rounds=4)

    assert hasher.verify_password(password="pw", password_hash="not-a-bcrypt-hash") is False
