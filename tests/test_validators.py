from __future__ import annotations

import pytest

from identivault.utils.validators import (
    InvalidNameError,
    InvalidSecretError,
    ValidationError,
    validate_name,
    validate_secret,
)


@pytest.mark.parametrize("name", ["a", "x" * 100, "alice"])
def test_valid_names_pass(name):
    assert validate_name(name) == name


@pytest.mark.parametrize("name", ["", "x" * 101])
def test_invalid_names_rejected(name):
    with pytest.raises(InvalidNameError):
        validate_name(name)


@pytest.mark.parametrize("secret", ["sixchr", b"sixchr", "a much longer secret"])
def test_valid_secrets_pass(secret):
    assert validate_secret(secret) == secret


@pytest.mark.parametrize("secret", ["", "five5", b"12345"])
def test_short_secrets_rejected(secret):
    with pytest.raises(InvalidSecretError):
        validate_secret(secret)


def test_validation_errors_are_value_errors():
    assert issubclass(InvalidNameError, ValidationError)
    assert issubclass(InvalidSecretError, ValidationError)
    assert issubclass(ValidationError, ValueError)


def test_non_string_name_rejected():
    with pytest.raises(InvalidNameError):
        validate_name(None)  # type: ignore[arg-type]


@pytest.mark.parametrize("name", [b"alice", bytearray(b"alice")])
def test_byte_names_rejected(name):
    with pytest.raises(InvalidNameError, match="name must be a string"):
        validate_name(name)  # type: ignore[arg-type]


def test_bytearray_secret_passes():
    assert validate_secret(bytearray(b"sixchr")) == bytearray(b"sixchr")
