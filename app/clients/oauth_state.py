"""
Signed OAuth state helpers.

The values produced here travel through the browser (the ``state`` query
parameter and the session cookie), so every payload is HMAC signed and any
tampering is rejected on decode.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict


class InvalidStateError(Exception):
    """Raised when a signed state value is malformed, tampered or expired."""


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    _SIGNATURE_SIZE = 32

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            raise ValueError("OAuth state secret must be provided.")
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidStateError("Malformed OAuth state value.") from exc

        signature = decoded[: self._SIGNATURE_SIZE]
        serialized = decoded[self._SIGNATURE_SIZE :]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise InvalidStateError("Invalid OAuth state signature.")
        try:
            return json.loads(serialized)
        except ValueError as exc:  # pragma: no cover - signature already matched
            raise InvalidStateError("OAuth state payload is not valid JSON.") from exc


class AuthorizationCodeSession:
    """
    Hold an authorization code between the OAuth redirect and the submission.

    The code lives in a signed cookie owned by the browser that completed the
    redirect, so concurrent logins never overwrite each other.
    """

    def __init__(self, encoder: OAuthStateEncoder, *, ttl_seconds: int) -> None:
        self._encoder = encoder
        self._ttl = timedelta(seconds=ttl_seconds)

    def issue(self, code: str) -> str:
        """Return the cookie value carrying ``code``."""
        return self._encoder.encode(
            {"code": code, "issued_at": datetime.now(timezone.utc).isoformat()}
        )

    def read(self, cookie_value: str) -> str:
        """Return the authorization code stored in ``cookie_value``."""
        data = self._encoder.decode(cookie_value)
        code = data.get("code")
        issued_at_raw = data.get("issued_at")
        if not code or not issued_at_raw:
            raise InvalidStateError("Session is missing the authorization code.")

        try:
            issued_at = datetime.fromisoformat(issued_at_raw)
        except ValueError as exc:
            raise InvalidStateError("Invalid issued_at in session.") from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)

        if datetime.now(timezone.utc) - issued_at > self._ttl:
            raise InvalidStateError("Authorization code has expired.")
        return code


__all__ = ["AuthorizationCodeSession", "InvalidStateError", "OAuthStateEncoder"]
