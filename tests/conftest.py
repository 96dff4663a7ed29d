"""Pytest shared fixtures: gateway config, fake Entra ID / Dynamics endpoints, Flask client."""
import json
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from gateway.config import GatewayConfig
from gateway.flask_app import create_app

CRM_URL = "https://org.crm.dynamics.com"
API_ROOT = f"{CRM_URL}/api/data/v9.0"
TOKEN_URL = "https://login.microsoftonline.com/tenant-123/oauth2/v2.0/token"


# ─────────────────────────────────────────────────────────────────────────────
# Fake HTTP layer
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    """Just enough of requests.Response for the Dynamics client."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        headers: Optional[dict] = None,
        url: str = "",
        text: Optional[str] = None,
    ):
        self.status_code = status_code
        self._payload = payload
        self.headers = CaseInsensitiveDict(headers or {})
        self.url = url
        self.reason = ""
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


def crm_error(status_code: int, message: str) -> StubResponse:
    """Dynamics-style error body."""
    return StubResponse(status_code, {"error": {"code": "0x80040217", "message": message}})


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: dict = field(default_factory=dict)

    @property
    def json(self):
        return self.kwargs.get("json")


Responder = Union[StubResponse, Callable[..., StubResponse], Exception]


class FakeDynamics:
    """Routes monkeypatched requests.* calls to canned responses and records them.

    Later routes win over earlier ones. Unrouted calls raise so that no test
    can reach the network by accident.
    """

    def __init__(self):
        self.calls: list[RecordedCall] = []
        self._routes: list[tuple[str, str, Responder]] = []
        self._guid_seq = 0
        self.route("POST", "/oauth2/v2.0/token", self._token)
        self.route("POST", "/api/data/v9.0/contacts", self._created)
        self.route("PATCH", "/api/data/v9.0/contacts(", StubResponse(204))
        self.route("DELETE", "/api/data/v9.0/contacts(", StubResponse(204))

    def route(self, method: str, fragment: str, responder: Responder) -> None:
        self._routes.insert(0, (method, fragment, responder))

    def next_guid(self) -> str:
        self._guid_seq += 1
        return f"00000000-0000-0000-0000-{self._guid_seq:012d}"

    def dispatch(self, method: str, url: str, **kwargs) -> StubResponse:
        self.calls.append(RecordedCall(method, url, kwargs))
        for route_method, fragment, responder in self._routes:
            if route_method == method and fragment in url:
                if isinstance(responder, Exception):
                    raise responder
                response = responder(url, **kwargs) if callable(responder) else responder
                if not response.url:
                    response.url = url
                return response
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    def _token(self, url, **kwargs):
        return StubResponse(200, {"token_type": "Bearer", "expires_in": 3599, "access_token": "test-token"})

    def _created(self, url, **kwargs):
        return StubResponse(204, headers={"Location": f"{API_ROOT}/contacts({self.next_guid()})"})

    # Convenience views -----------------------------------------------------
    @property
    def token_calls(self) -> list[RecordedCall]:
        return [c for c in self.calls if "/oauth2/v2.0/token" in c.url]

    @property
    def crm_calls(self) -> list[RecordedCall]:
        return [c for c in self.calls if "/oauth2/v2.0/token" not in c.url]

    def calls_for(self, method: str) -> list[RecordedCall]:
        return [c for c in self.crm_calls if c.method == method]

    @property
    def patches(self) -> list[RecordedCall]:
        return self.calls_for("PATCH")


@pytest.fixture(autouse=True)
def fake_dynamics(monkeypatch):
    """Prevent unit tests from hitting Entra ID or Dynamics."""
    fake = FakeDynamics()
    for method in ("get", "post", "patch", "delete"):
        verb = method.upper()
        monkeypatch.setattr(requests, method, lambda url, *args, _verb=verb, **kwargs: fake.dispatch(_verb, url, **kwargs))
    return fake


# ─────────────────────────────────────────────────────────────────────────────
# Config & Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> GatewayConfig:
    base = dict(
        demo_mode=False,
        tenant_id="tenant-123",
        client_id="client-abc",
        client_secret="s3cret",
        crm_url=CRM_URL,
    )
    base.update(overrides)
    return GatewayConfig(**base)


@pytest.fixture()
def gateway_config() -> GatewayConfig:
    return make_config()


@pytest.fixture()
def app(gateway_config):
    flask_app = create_app(gateway_config)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    """Flask test client wired to the fake Dynamics endpoints."""
    with app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Request payloads
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def teacher_payload() -> dict:
    return {
        "firstName": "Mona",
        "lastName": "Haddad",
        "email": "mona.haddad@example.edu",
        "telephone1": "0791234567",
        "new_graduationuniversity": "University of Jordan",
        "new_expectedsalary": 650,
    }


@pytest.fixture()
def student_payload() -> dict:
    return {
        "firstName": "Omar",
        "lastName": "Khalil",
        "new_type": "100000002",
        "gendercode": "1",
        "new_chronicdiseases": "none",
        "birthdate": "2015-09-01",
        "new_nationalid": "2015123456",
        "new_assignedinanoherschool": "no",
        "new_previousassignedschool": "Al Noor Primary",
        "new_transferreason": "relocation",
        "new_ageatnexteducationalyear": "9",
        "academicYearId": "aaaaaaaa-1111-2222-3333-444444444444",
    }


@pytest.fixture()
def parent_payload() -> dict:
    return {
        "firstName": "Khaled",
        "lastName": "Khalil",
        "email": "khaled.khalil@example.com",
        "telephone1": "0799876543",
        "gendercode": "1",
        "familystatuscode": "2",
        "new_academicqualification": "bachelor",
        "jobtitle": "Engineer",
        "new_jobplace": "Amman",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a live CRM tenant)"
    )
