import base64, hashlib, hmac
from flask import request, abort

from .logger import error

HMAC_HEADER = "X-Shopify-Hmac-Sha256"


def verify_hmac(raw: bytes, their_hmac: str | None, secret: str | None) -> bool:
    """Check a Shopify webhook signature against the raw, unparsed body."""
    if not secret:
        error("[auth] SHOPIFY_WEBHOOK_SECRET not configured")
        return False
    if not their_hmac:
        return False
    digest = hmac.new(secret.encode(), raw, hashlib.sha256).digest()
    return hmac.compare_digest(base64.b64encode(digest), their_hmac.encode())


def verify_webhook_hmac(secret: str | None) -> bytes:
    raw = request.get_data()
    their_hmac = request.headers.get(HMAC_HEADER)
    if not their_hmac:
        error(f"[auth] missing {HMAC_HEADER} header")
        abort(401)
    if not verify_hmac(raw, their_hmac, secret):
        error("[auth] webhook signature verification failed")
        abort(401)
    return raw
