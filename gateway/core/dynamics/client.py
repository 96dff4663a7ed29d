"""Low-level HTTP client for the Dynamics 365 Web API.

Handles client-credentials authentication against Entra ID, token caching,
and the OData HTTP verbs used by the gateway.
"""
from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import requests

from gateway.config import GatewayConfig
from .exceptions import AuthError, DynamicsAPIError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10

ODATA_HEADERS = {
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def error_message(resp: requests.Response) -> str:
    """Best-effort extraction of the upstream error message.

    Dynamics and Entra ID both answer with JSON bodies, but in different shapes:
    ``{"error": {"message": ...}}`` for the Web API and
    ``{"error": "...", "error_description": ...}`` for the token endpoint.
    """
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason or f"HTTP {resp.status_code}"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("error_description"):
            return str(body["error_description"])
        if isinstance(error, str) and error:
            return error
    return resp.text or f"HTTP {resp.status_code}"


class TokenProvider:
    """Client-credentials token source with expiry-aware caching.

    One provider per credential set. Tokens are reused until they are within
    ``refresh_leeway`` seconds of expiry, then fetched again.

    Usage:
        provider = TokenProvider.from_config(cfg)
        token = provider.get_access_token()
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scope: str,
        *,
        refresh_leeway: int = 60,
        timeout: float = REQUEST_TIMEOUT,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self.scope = scope
        self.refresh_leeway = timedelta(seconds=refresh_leeway)
        self.timeout = timeout
        self._now = now or datetime.now
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg: GatewayConfig) -> "TokenProvider":
        return cls(
            cfg.token_url,
            cfg.client_id,
            cfg.client_secret,
            cfg.token_scope,
            refresh_leeway=cfg.token_refresh_leeway,
            timeout=cfg.request_timeout,
        )

    def get_access_token(self) -> str:
        """Return a valid bearer token, fetching a new one if needed.

        Raises:
            AuthError: If the identity provider rejects the request or
                answers with a body that carries no access token
        """
        with self._lock:
            if self._token and self._token_expires_at and self._now() < self._token_expires_at - self.refresh_leeway:
                return self._token

            token, expires_in = self._request_token()
            self._token = token
            self._token_expires_at = self._now() + timedelta(seconds=expires_in)
            logger.debug("Fetched access token for client_id=%s (expires_in=%ss)", self.client_id, expires_in)
            return token

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a fresh one."""
        with self._lock:
            self._token = None
            self._token_expires_at = None

    def _request_token(self) -> tuple[str, int]:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "scope": self.scope,
        }
        try:
            resp = requests.post(self.token_url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Error fetching access token: %s", exc)
            raise AuthError(0, str(exc), self.token_url) from exc

        if resp.status_code != 200:
            message = error_message(resp)
            logger.error("Error fetching access token: [%s] %s", resp.status_code, message)
            raise AuthError(resp.status_code, message, self.token_url)

        try:
            body = resp.json()
            token = body["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Malformed token response from %s", self.token_url)
            raise AuthError(resp.status_code, "Token response did not contain an access_token", self.token_url) from exc

        try:
            expires_in = int(body.get("expires_in", 3599))
        except (TypeError, ValueError):
            expires_in = 3599
        return token, expires_in


class DynamicsClient:
    """HTTP client for the Dynamics Web API with automatic authentication.

    Paths are relative to the API root (``<crm_url>/api/data/<version>``).

    Usage:
        client = DynamicsClient(cfg.api_base_url, TokenProvider.from_config(cfg))
        response = client.post("/contacts", json={"firstname": "Ada"})
    """

    def __init__(self, base_url: str, token_provider: TokenProvider, *, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg: GatewayConfig, token_provider: Optional[TokenProvider] = None) -> "DynamicsClient":
        return cls(
            cfg.api_base_url,
            token_provider or TokenProvider.from_config(cfg),
            timeout=cfg.request_timeout,
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(ODATA_HEADERS)
        headers["Authorization"] = f"Bearer {self.token_provider.get_access_token()}"
        if extra:
            headers.update(extra)
        return headers

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            AuthError: If no token could be obtained
            DynamicsAPIError: On HTTP or transport error
        """
        url = self.url_for(path)
        headers = self._headers(kwargs.pop("headers", None))
        resp = self._send(requests.get, url, params=params, headers=headers, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        url = self.url_for(path)
        headers = self._headers(kwargs.pop("headers", None))
        resp = self._send(requests.post, url, json=json, headers=headers, **kwargs)
        self._handle_error(resp)
        return resp

    def patch(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> requests.Response:
        """Execute PATCH request with automatic authentication."""
        url = self.url_for(path)
        headers = self._headers(kwargs.pop("headers", None))
        resp = self._send(requests.patch, url, json=json, headers=headers, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication."""
        url = self.url_for(path)
        headers = self._headers(kwargs.pop("headers", None))
        resp = self._send(requests.delete, url, headers=headers, **kwargs)
        self._handle_error(resp)
        return resp

    def _send(self, method, url: str, **kwargs) -> requests.Response:
        try:
            return method(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise DynamicsAPIError(0, str(exc), url) from exc

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            DynamicsAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            if resp.status_code == 401:
                # Token revoked or rotated upstream; next call re-authenticates
                self.token_provider.invalidate()
            raise DynamicsAPIError(resp.status_code, error_message(resp), resp.url)
