"""Gunicorn configuration file with optional Azure Key Vault secret loading.

Run with:
    gunicorn -c gunicorn.conf.py

Secret Loading Priority (post_fork hook):
1. Environment / /run/secrets (Docker secrets), read by gateway.config.settings
2. Azure Key Vault direct access, only when AZURE_USE_KEYVAULT=true and
   CLIENT_SECRET is not already set
"""
import os

wsgi_app = "gateway.flask_app:create_app()"
bind = f"0.0.0.0:{os.environ.get('PORT', '8080')}"
workers = int(os.environ.get("GUNICORN_WORKERS", "1"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "60"))
accesslog = "-"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Parent-link memory lives inside each worker, so linking a parent to the
    next student in the shared default scope only works reliably with
    GUNICORN_WORKERS=1.
    """
    if int(os.environ.get("GUNICORN_WORKERS", "1")) > 1:
        worker.log.warning("Multiple workers: parent links are not shared between worker processes")

    if os.environ.get("CLIENT_SECRET"):
        return

    use_kv = os.environ.get("AZURE_USE_KEYVAULT", "false").lower() == "true"
    if not use_kv:
        worker.log.info("Skipping Azure Key Vault direct access (AZURE_USE_KEYVAULT=false)")
        return

    try:
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.secrets import SecretClient
    except ImportError:
        worker.log.error("Azure Key Vault requested but azure-keyvault-secrets not installed (pip install .[keyvault])")
        return

    vault_name = os.environ.get("AZURE_KEY_VAULT_NAME")
    if not vault_name:
        worker.log.error("AZURE_KEY_VAULT_NAME required when AZURE_USE_KEYVAULT=true")
        return

    vault_uri = f"https://{vault_name}.vault.azure.net"
    secret_client = SecretClient(vault_url=vault_uri, credential=DefaultAzureCredential())
    secret_name = os.environ.get("AZURE_SECRET_CLIENT_SECRET", "crm-client-secret").strip()

    try:
        secret = secret_client.get_secret(secret_name)
        os.environ["CLIENT_SECRET"] = secret.value
        worker.log.info(f"Loaded secret '{secret_name}' into CLIENT_SECRET")
    except Exception as exc:
        worker.log.error(f"Failed to load secret '{secret_name}': {exc}")
