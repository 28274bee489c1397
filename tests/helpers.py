import base64
import hashlib
import hmac

WEBHOOK_SECRET = "test_webhook_secret"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, links=None, text=""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.links = links or {}
        self.text = text

    def json(self):
        return self._payload
