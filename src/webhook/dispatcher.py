"""Instagram reply dispatcher: sends generated text via the Graph API.

A single send attempt is made per reply. Graph API error codes are
classified so callers can tell a bad token from a recipient that cannot
be messaged; no automatic resend is attempted.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.config import DEFAULT_GRAPH_API_BASE

logger = logging.getLogger(__name__)

_SEND_TIMEOUT_SECONDS = 15.0
_PROBE_TIMEOUT_SECONDS = 10.0

# Graph API error codes
_INVALID_TOKEN_CODE = 190
_UNREACHABLE_CODES = frozenset({10, 551})
_UNREACHABLE_SUBCODES = frozenset({2018001, 2018278})  # with code 100


class DeliveryError(Exception):
    """Reply could not be delivered to the recipient."""

    reason = "delivery_failed"

    def __init__(
        self,
        message: str,
        code: int | None = None,
        subcode: int | None = None,
        fbtrace_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.subcode = subcode
        self.fbtrace_id = fbtrace_id
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "code": self.code,
            "subcode": self.subcode,
            "message": self.message,
            "fbtrace_id": self.fbtrace_id,
        }


class InvalidCredentialError(DeliveryError):
    """The page access token was rejected (Graph error 190)."""

    reason = "invalid_credential"


class RecipientUnreachableError(DeliveryError):
    """The recipient cannot be messaged, e.g. outside the 24h window."""

    reason = "recipient_unreachable"


def classify_graph_error(status_code: int, body: Any) -> DeliveryError:
    """Map a Graph API error response onto the DeliveryError hierarchy."""
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return DeliveryError(f"Graph API returned HTTP {status_code}", status_code=status_code)

    code = error.get("code")
    subcode = error.get("error_subcode")
    kwargs: dict[str, Any] = {
        "code": code,
        "subcode": subcode,
        "fbtrace_id": error.get("fbtrace_id"),
        "status_code": status_code,
    }
    message = str(error.get("message") or f"Graph API returned HTTP {status_code}")

    if code == _INVALID_TOKEN_CODE:
        return InvalidCredentialError(message, **kwargs)
    if code in _UNREACHABLE_CODES or (code == 100 and subcode in _UNREACHABLE_SUBCODES):
        return RecipientUnreachableError(message, **kwargs)
    return DeliveryError(message, **kwargs)


class InstagramDispatcher:
    """Sends replies through the Instagram Graph API send endpoint."""

    def __init__(self, access_token: str, api_base: str = DEFAULT_GRAPH_API_BASE) -> None:
        self._access_token = access_token
        self._api_base = api_base.rstrip("/")

    async def send(self, recipient_id: str, text: str) -> dict[str, Any]:
        """Send ``text`` to ``recipient_id``; raises DeliveryError on failure."""
        url = f"{self._api_base}/me/messages"
        payload = {
            "recipient": {"id": recipient_id},
            "message": {"text": text},
            "messaging_type": "RESPONSE",
        }
        logger.info("Sending reply to Instagram user %s", recipient_id)
        data = await self._request(
            "POST", url, json=payload, timeout=_SEND_TIMEOUT_SECONDS,
        )
        logger.info("Reply delivered to %s", recipient_id)
        return data

    async def check_credential(self) -> dict[str, Any]:
        """Look up the account behind the access token."""
        url = f"{self._api_base}/me"
        return await self._request(
            "GET", url, params={"fields": "name,id"}, timeout=_PROBE_TIMEOUT_SECONDS,
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float = _SEND_TIMEOUT_SECONDS,
    ) -> dict[str, Any]:
        query = {"access_token": self._access_token, **(params or {})}
        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.request(
                    method, url, params=query, json=json, timeout=timeout,
                )
        except httpx.TimeoutException as exc:
            raise DeliveryError(f"Graph API request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Graph API request failed: {exc}") from exc

        try:
            body: Any = resp.json()
        except ValueError:
            body = None

        if not resp.is_success:
            error = classify_graph_error(resp.status_code, body)
            logger.error(
                "Graph API error %s (%s): %s [fbtrace_id=%s]",
                error.code, error.reason, error.message, error.fbtrace_id,
            )
            raise error
        return body if isinstance(body, dict) else {}
