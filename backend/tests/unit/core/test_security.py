"""Unit tests for password and OTP hashing."""

from __future__ import annotations

import pytest
from storefront.core import security


def test_password_hash_round_trip() -> None:
    hashed = security.hash_password("Passw0rd!")
    assert hashed != "Passw0rd!"
    assert security.verify_password("Passw0rd!", hashed) is True
    assert security.verify_password("passw0rd!", hashed) is False


@pytest.mark.parametrize("bad", ["", None, 123])
def test_hash_password_rejects_empty_or_non_string(bad) -> None:
    with pytest.raises(ValueError):
        security.hash_password(bad)


def test_verify_password_without_stored_hash() -> None:
    assert security.verify_password("anything", None) is False
    assert security.verify_password("anything", "") is False


def test_generate_otp_is_six_digits() -> None:
    codes = {security.generate_otp() for _ in range(50)}
    assert all(len(code) == 6 and code.isdigit() for code in codes)
    # Not a constant
    assert len(codes) > 1


def test_otp_hash_is_salted_and_verifies() -> None:
    first = security.hash_otp("012345")
    second = security.hash_otp("012345")
    assert first != second
    assert security.verify_otp("012345", first)
    assert security.verify_otp(" 012345 ", second)
    assert not security.verify_otp("543210", first)
    assert not security.verify_otp("012345", None)
