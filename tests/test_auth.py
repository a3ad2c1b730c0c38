import jwt

from opsroom.config import get_settings
from opsroom.utils.auth import current_user, decode_user_id

SECRET = "opsroom-test-secret-0123456789abcdef"


def test_decode_valid_token(token):
    assert decode_user_id(token("user-9")) == "user-9"


def test_decode_rejects_wrong_secret(token):
    assert decode_user_id(token(secret="another-secret-entirely-0123456789abcdef")) is None


def test_decode_rejects_token_without_subject():
    assert decode_user_id(jwt.encode({"name": "anon"}, SECRET, algorithm="HS256")) is None


def test_decode_requires_configured_secret(monkeypatch, token):
    monkeypatch.setenv("AUTH_JWT_SECRET", "")
    get_settings.cache_clear()
    assert decode_user_id(token()) is None


def test_audience_is_checked_when_configured(monkeypatch):
    monkeypatch.setenv("AUTH_JWT_AUDIENCE", "opsroom")
    get_settings.cache_clear()
    good = jwt.encode({"sub": "user-1", "aud": "opsroom"}, SECRET, algorithm="HS256")
    bad = jwt.encode({"sub": "user-1", "aud": "elsewhere"}, SECRET, algorithm="HS256")
    assert decode_user_id(good) == "user-1"
    assert decode_user_id(bad) is None


def test_current_user_parses_bearer_header(token):
    assert current_user(f"Bearer {token()}") == "user-1"
    assert current_user(None) is None
    assert current_user("Basic dXNlcjpwdw==") is None
