"""Tests for the client-credentials token provider."""
from datetime import datetime, timedelta

import pytest
import requests

from gateway.core.dynamics import AuthError, TokenProvider
from tests.conftest import StubResponse, TOKEN_URL, make_config


class Clock:
    def __init__(self):
        self.current = datetime(2026, 1, 1, 8, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, seconds: int):
        self.current += timedelta(seconds=seconds)


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def provider(clock):
    cfg = make_config()
    return TokenProvider(
        cfg.token_url,
        cfg.client_id,
        cfg.client_secret,
        cfg.token_scope,
        refresh_leeway=60,
        now=clock,
    )


def test_posts_client_credentials_form(provider, fake_dynamics):
    token = provider.get_access_token()

    assert token == "test-token"
    call = fake_dynamics.token_calls[0]
    assert call.url == TOKEN_URL
    assert call.kwargs["data"] == {
        "grant_type": "client_credentials",
        "client_id": "client-abc",
        "client_secret": "s3cret",
        "scope": "https://org.crm.dynamics.com/.default",
    }
    assert "json" not in call.kwargs


def test_token_reused_until_close_to_expiry(provider, clock, fake_dynamics):
    provider.get_access_token()
    clock.advance(3000)
    provider.get_access_token()

    assert len(fake_dynamics.token_calls) == 1


def test_token_refreshed_inside_leeway(provider, clock, fake_dynamics):
    provider.get_access_token()
    clock.advance(3599 - 30)
    provider.get_access_token()

    assert len(fake_dynamics.token_calls) == 2


def test_invalidate_forces_new_fetch(provider, fake_dynamics):
    provider.get_access_token()
    provider.invalidate()
    provider.get_access_token()

    assert len(fake_dynamics.token_calls) == 2


def test_rejected_credentials_raise_auth_error(provider, fake_dynamics):
    fake_dynamics.route(
        "POST",
        "/oauth2/v2.0/token",
        StubResponse(401, {"error": "invalid_client", "error_description": "AADSTS7000215: Invalid client secret."}),
    )

    with pytest.raises(AuthError) as excinfo:
        provider.get_access_token()

    assert excinfo.value.status_code == 401
    assert "AADSTS7000215" in excinfo.value.message


def test_body_without_access_token_raises_auth_error(provider, fake_dynamics):
    fake_dynamics.route("POST", "/oauth2/v2.0/token", StubResponse(200, {"token_type": "Bearer"}))

    with pytest.raises(AuthError, match="access_token"):
        provider.get_access_token()


def test_non_json_body_raises_auth_error(provider, fake_dynamics):
    fake_dynamics.route("POST", "/oauth2/v2.0/token", StubResponse(200, None, text="<html>proxy</html>"))

    with pytest.raises(AuthError):
        provider.get_access_token()


def test_transport_error_raises_auth_error(provider, fake_dynamics):
    fake_dynamics.route("POST", "/oauth2/v2.0/token", requests.ConnectionError("connection refused"))

    with pytest.raises(AuthError) as excinfo:
        provider.get_access_token()

    assert excinfo.value.status_code == 0


def test_failed_fetch_is_not_cached(provider, fake_dynamics):
    fake_dynamics.route("POST", "/oauth2/v2.0/token", StubResponse(500, {"error": "temporarily_unavailable"}))
    with pytest.raises(AuthError):
        provider.get_access_token()

    fake_dynamics.route(
        "POST",
        "/oauth2/v2.0/token",
        StubResponse(200, {"access_token": "second-token", "expires_in": 3599}),
    )
    assert provider.get_access_token() == "second-token"


def test_from_config_uses_authority_host():
    cfg = make_config(authority_host="https://login.microsoftonline.us/")
    provider = TokenProvider.from_config(cfg)

    assert provider.token_url == "https://login.microsoftonline.us/tenant-123/oauth2/v2.0/token"
    assert provider.scope == "https://org.crm.dynamics.com/.default"
