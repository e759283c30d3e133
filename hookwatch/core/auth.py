"""Shared bearer-token store for the webhook endpoint."""

from __future__ import annotations

import hmac
import re
import secrets
import string
from pathlib import Path

from hookwatch.config import AuthConfig
from hookwatch.utils.logging import get_logger

log = get_logger(__name__)

TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
TOKEN_FILE = "webhook_token"

_BEARER_PREFIX = "Bearer "
_BEARER_HEADER_RE = re.compile(r"^Bearer\s+([A-Za-z0-9+/=._-]+)$", re.IGNORECASE)


def generate_token(length: int = 32) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def extract_token_from_header(auth_header: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header:
        return None
    match = _BEARER_HEADER_RE.match(auth_header)
    return match.group(1) if match else None


class TokenStore:
    """Holds the single shared secret and validates presented tokens.

    The token comes from config when set, otherwise from ``webhook_token``
    in the data dir; a missing file gets a freshly generated token. There is
    no expiry, regeneration is manual.
    """

    def __init__(self, config: AuthConfig, data_dir: Path) -> None:
        self._config = config
        self._path = data_dir / TOKEN_FILE
        self._token = self._load_initial_token()

    def _load_initial_token(self) -> str:
        if self._config.token:
            return self._config.token

        if self._path.exists():
            try:
                stored = self._path.read_text().strip()
            except OSError:
                log.exception("token_load_failed", path=str(self._path))
                stored = ""
            if stored:
                return stored

        token = generate_token()
        self._persist(token)
        log.info("token_generated", path=str(self._path))
        return token

    def _persist(self, token: str) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(token)
            self._path.chmod(0o600)
        except OSError:
            log.exception("token_persist_failed", path=str(self._path))

    @property
    def token(self) -> str:
        return self._token

    def regenerate(self) -> str:
        self._token = generate_token()
        self._persist(self._token)
        log.info("token_regenerated")
        return self._token

    def validate_token(self, candidate: str | None) -> bool:
        """Exact match after stripping an optional ``Bearer `` prefix."""
        if not candidate:
            return False
        token = candidate.removeprefix(_BEARER_PREFIX)
        return hmac.compare_digest(token.encode(), self._token.encode())

    def validate_auth_header(self, auth_header: str | None) -> bool:
        """Accept ``Bearer <token>`` in any case, or the bare token."""
        token = extract_token_from_header(auth_header)
        if token is None:
            return self.validate_token(auth_header)
        return self.validate_token(token)
