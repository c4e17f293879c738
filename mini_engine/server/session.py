"""
Signed Cookie Session.

The whole session lives in one cookie of the form ``<signature>|<payload>``
where ``payload`` is a JSON object and ``signature`` the hex HMAC-SHA256 of
``payload + domain + secret`` keyed with the secret. There is no server-side
storage.

A cookie with a bad signature or an unexpected shape is ignored and the
session starts empty; it never raises. A missing ``SESSION_SECRET`` does raise
``ConfigurationError``.
"""

from __future__ import annotations

import copy
import hashlib
import hmac
import json
from typing import Any, Dict, Mapping, Optional

from starlette.requests import Request
from starlette.responses import Response

from mini_engine.core.config import Settings
from mini_engine.core.errors import ConfigurationError
from mini_engine.core.logging_config import get_logger

logger = get_logger(__name__)

SESSION_TIMEOUT = 60 * 60 * 24 * 30  # 30 days


def _encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class SessionStore:
    """Request-scoped view of the session cookie."""

    def __init__(
        self,
        cookies: Mapping[str, str],
        host: str,
        *,
        secret: Optional[str],
        domain: Optional[str] = None,
        name: str = "session",
    ) -> None:
        self._cookies = cookies
        self._host = host
        self._secret = secret
        self._domain = domain
        self.name = name
        self._data: Optional[Dict[str, Any]] = None
        self.pending_cookie: Optional[str] = None
        self.write_count = 0

    @classmethod
    def from_request(cls, request: Request, settings: Settings) -> "SessionStore":
        config = settings.session
        return cls(
            request.cookies,
            request.url.hostname or "",
            secret=config.secret,
            domain=config.domain,
            name=config.name,
        )

    @property
    def domain(self) -> str:
        return self._domain or self._host

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError("SESSION_SECRET is not set.")
        return self._secret

    def signature(self, payload: str) -> str:
        secret = self._require_secret()
        message = (payload + self.domain + secret).encode("utf-8")
        return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def load(self) -> Dict[str, Any]:
        """Parse and verify the cookie once; later calls return the cached state."""
        if self._data is not None:
            return self._data
        self._require_secret()
        self._data = {}

        parts = self._cookies.get(self.name, "").split("|", 1)
        if len(parts) != 2:
            return self._data
        signature, payload = parts
        if not hmac.compare_digest(signature.encode("utf-8"), self.signature(payload).encode("utf-8")):
            logger.debug("Ignoring session cookie with invalid signature")
            return self._data
        try:
            data = json.loads(payload)
        except ValueError:
            return self._data
        if isinstance(data, dict):
            self._data = data
        return self._data

    def get(self, key: str) -> Any:
        """Return a copy of the stored value; mutate it and pass it back to ``set``."""
        return copy.deepcopy(self.load().get(key))

    def __contains__(self, key: str) -> bool:
        return key in self.load()

    def set(self, key: str, value: Any) -> None:
        """Store ``value``; an identical value already stored causes no cookie write."""
        data = self.load()
        if key in data and _encode(data[key]) == _encode(value):
            return
        data[key] = copy.deepcopy(value)
        self.write()

    def delete(self, key: str) -> None:
        data = self.load()
        if key not in data:
            return
        del data[key]
        self.write()

    def write(self) -> None:
        payload = _encode(self.load())
        self.pending_cookie = f"{self.signature(payload)}|{payload}"
        self.write_count += 1

    def apply(self, response: Response) -> None:
        """Copy the pending cookie, if any, onto the outgoing response."""
        if self.pending_cookie is None:
            return
        response.set_cookie(
            self.name,
            self.pending_cookie,
            max_age=SESSION_TIMEOUT,
            expires=SESSION_TIMEOUT,
            path="/",
            domain=self.domain or None,
            secure=True,
            httponly=False,
        )
