from __future__ import annotations

import pytest

from marketplace.core.config import load_settings
from marketplace.core.errors import AccessDeniedError, ValidationError
from marketplace.core.pagination import compute_total_pages, normalize_page, page_result
from marketplace.core.security import Identity, create_access_token, decode_identity, require_owner


def test_load_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_PREFIX", "/v2/")
    monkeypatch.setenv("SQL_ECHO", "yes")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "25")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")

    settings = load_settings(load_env=False)

    assert settings.api_prefix == "/v2"
    assert settings.sql_echo is True
    assert settings.default_page_size == 25
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]
    assert settings.database_url == "sqlite://"


def test_load_settings_rejects_bad_boolean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQL_ECHO", "maybe")

    with pytest.raises(ValueError):
        load_settings(load_env=False)


def test_normalize_page_defaults_and_bounds() -> None:
    request = normalize_page(None, None, default_limit=10, max_limit=50)
    assert (request.page, request.limit, request.offset) == (1, 10, 0)
    assert normalize_page(3, 20).offset == 40

    for page, limit in [(0, 10), (1, 0), (1, 101)]:
        with pytest.raises(ValidationError):
            normalize_page(page, limit)


def test_page_result_flags() -> None:
    assert compute_total_pages(0, 10) == 0
    assert compute_total_pages(11, 10) == 2

    empty = page_result([], 0, normalize_page(1, 10))
    assert empty["total_pages"] == 0
    assert empty["has_next"] is False and empty["has_prev"] is False


def test_token_round_trip(settings) -> None:
    identity = Identity(user_id="user-1", email="one@example.com", name="One")

    decoded = decode_identity(create_access_token(identity, settings), settings)

    assert decoded == Identity(user_id="user-1", email="one@example.com", name="One", image=None)


def test_token_signed_with_other_key_is_rejected(settings) -> None:
    token = create_access_token(Identity(user_id="u", email="u@example.com"), settings)
    other = settings.model_copy(update={"secret_key": "another-secret"})

    assert decode_identity(token, other) is None
    assert decode_identity("not-a-token", settings) is None


def test_require_owner() -> None:
    identity = Identity(user_id="owner", email="owner@example.com")

    require_owner("owner", identity)
    with pytest.raises(AccessDeniedError) as excinfo:
        require_owner("someone-else", identity)
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Access denied"
