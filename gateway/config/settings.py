"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass(frozen=True)
class GatewayConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Entra ID client credentials
    tenant_id: str
    client_id: str
    client_secret: str

    # Dynamics
    crm_url: str
    crm_api_version: str = "v9.0"
    authority_host: str = DEFAULT_AUTHORITY_HOST

    # HTTP
    port: int = 8080
    request_timeout: float = 10.0
    token_refresh_leeway: int = 60
    cors_allowed_origins: str = "*"

    # Parent links
    parent_link_ttl_seconds: int = 3600

    log_level: str = "INFO"

    @property
    def token_url(self) -> str:
        """OAuth 2.0 v2 token endpoint for the configured tenant."""
        return f"{self.authority_host.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def token_scope(self) -> str:
        return f"{self.crm_url}/.default"

    @property
    def api_base_url(self) -> str:
        """Root of the Dynamics Web API, e.g. https://org.crm.dynamics.com/api/data/v9.0"""
        return f"{self.crm_url}/api/data/{self.crm_api_version}"


def _get_or_demo(var_name: str, demo_default: str, demo_mode: bool, value: Optional[str] = None) -> str:
    """Return the configured value, a demo placeholder, or fail in production mode."""
    value = value if value is not None else os.environ.get(var_name)
    if value:
        return value

    if demo_mode:
        print(f"[demo-mode] Using placeholder for {var_name}")
        return demo_default

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}") from exc


def _float_env(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got {raw!r}") from exc


def load_settings(env_file: Optional[Path] = ENV_FILE) -> GatewayConfig:
    """Load gateway settings from .env, environment and /run/secrets."""
    if env_file is not None:
        # Existing environment variables win over the .env file
        load_dotenv(env_file, override=False)

    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    tenant_id = _get_or_demo("TENANT_ID", "00000000-0000-0000-0000-000000000000", demo_mode)
    client_id = _get_or_demo("CLIENT_ID", "demo-client-id", demo_mode)
    client_secret = _get_or_demo(
        "CLIENT_SECRET",
        "demo-client-secret",
        demo_mode,
        value=_load_secret_from_file("client_secret", "CLIENT_SECRET"),
    )
    crm_url = _get_or_demo("CRM_URL", "https://demo.crm.dynamics.com", demo_mode).rstrip("/")

    cfg = GatewayConfig(
        demo_mode=demo_mode,
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        crm_url=crm_url,
        crm_api_version=os.environ.get("CRM_API_VERSION", "v9.0").strip() or "v9.0",
        authority_host=os.environ.get("AUTHORITY_HOST", DEFAULT_AUTHORITY_HOST).strip() or DEFAULT_AUTHORITY_HOST,
        port=_int_env("PORT", 8080),
        request_timeout=_float_env("REQUEST_TIMEOUT", 10.0),
        token_refresh_leeway=_int_env("TOKEN_REFRESH_LEEWAY", 60),
        cors_allowed_origins=os.environ.get("CORS_ALLOWED_ORIGINS", "*").strip() or "*",
        parent_link_ttl_seconds=_int_env("PARENT_LINK_TTL_SECONDS", 3600),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; crm_url={cfg.crm_url}; client_id={cfg.client_id}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return cfg
