"""Meta webhook verification: subscription handshake and payload signatures."""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationResult:
    status_code: int
    content: str = ""
    error: str | None = None


class WebhookVerifier:
    """Handles the GET subscription challenge and X-Hub-Signature-256 checks."""

    def __init__(self, verify_token: str, app_secret: str | None = None) -> None:
        self._verify_token = verify_token
        self._app_secret = app_secret

    @property
    def signature_required(self) -> bool:
        return bool(self._app_secret)

    def handle_verification(self, params: Mapping[str, str]) -> VerificationResult:
        """Echo the challenge for a valid subscribe request, otherwise deny."""
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token", "")
        if mode == "subscribe" and hmac.compare_digest(
            token.encode(), self._verify_token.encode(),
        ):
            return VerificationResult(status_code=200, content=params.get("hub.challenge", ""))
        return VerificationResult(status_code=403, error="Verification failed")

    def verify_signature(self, headers: Mapping[str, str], body: bytes) -> bool:
        """Verify the HMAC-SHA256 signature Meta attaches to deliveries.

        Always True when no app secret is configured.
        """
        if not self._app_secret:
            return True
        signature = headers.get("x-hub-signature-256", "")
        if not signature.startswith("sha256="):
            return False

        expected = hmac.new(
            self._app_secret.encode(), body, hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(signature[7:].encode(), expected.encode())
