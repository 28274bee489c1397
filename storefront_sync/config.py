import os

DEFAULT_API_VERSION = "2025-01"
DEFAULT_STOREFRONT = "LUNERA"


def load_config() -> dict:
    return {
        "API_VERSION": os.getenv("API_VERSION", DEFAULT_API_VERSION),
        "BASE_URL": os.getenv("BASE_URL"),
        "SHOPIFY_STORE_URL": os.getenv("SHOPIFY_STORE_URL"),
        "SHOPIFY_ACCESS_TOKEN": os.getenv("SHOPIFY_ACCESS_TOKEN"),
        "SHOPIFY_WEBHOOK_SECRET": os.getenv("SHOPIFY_WEBHOOK_SECRET"),
        "FIREBASE_PROJECT_ID": os.getenv("FIREBASE_PROJECT_ID"),
        "FIREBASE_CLIENT_EMAIL": os.getenv("FIREBASE_CLIENT_EMAIL"),
        "FIREBASE_PRIVATE_KEY": os.getenv("FIREBASE_PRIVATE_KEY"),
        "DEFAULT_STOREFRONT": os.getenv("DEFAULT_STOREFRONT", DEFAULT_STOREFRONT),
    }


def shopify_store(config) -> dict:
    return {
        "domain": config.get("SHOPIFY_STORE_URL"),
        "token": config.get("SHOPIFY_ACCESS_TOKEN"),
        "secret": config.get("SHOPIFY_WEBHOOK_SECRET"),
        "api_version": config.get("API_VERSION") or DEFAULT_API_VERSION,
        "name": "SHOPIFY",
    }


def firebase_credentials(config) -> dict | None:
    """Service-account dict for firebase_admin, or None when incomplete."""
    project_id = config.get("FIREBASE_PROJECT_ID")
    client_email = config.get("FIREBASE_CLIENT_EMAIL")
    private_key = config.get("FIREBASE_PRIVATE_KEY")
    if not (project_id and client_email and private_key):
        return None
    return {
        "type": "service_account",
        "project_id": project_id,
        "client_email": client_email,
        # env files carry the PEM with literal \n escapes
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": "https://oauth2.googleapis.com/token",
    }
