"""Tests for Basic-auth credential encoding."""

import base64

import pytest

from donedone_cli.core.auth import Credential


@pytest.mark.parametrize(
    ("username", "secret"),
    [
        ("jane", "hunter2"),
        ("jane@example.com", "p:a:s:s"),
        ("", ""),
        ("zoë", "пароль"),
        ("user", "token with spaces and /+= chars"),
    ],
)
def test_token_decodes_to_username_colon_secret(username, secret):
    token = Credential(username, secret).encode()
    assert base64.b64decode(token).decode("utf-8") == f"{username}:{secret}"


def test_header_uses_basic_scheme():
    assert Credential("jane", "hunter2").header() == "Basic amFuZTpodW50ZXIy"


def test_encode_is_deterministic():
    cred = Credential("jane", "hunter2")
    assert cred.encode() == cred.encode() == Credential("jane", "hunter2").encode()


def test_credential_is_immutable():
    cred = Credential("jane", "hunter2")
    with pytest.raises(AttributeError):
        cred.secret = "other"  # type: ignore[misc]


def test_repr_hides_secret():
    assert "hunter2" not in repr(Credential("jane", "hunter2"))
