"""
Client-side auth state.

Holds the bearer token and a snapshot of the signed-in user, and knows how
to persist both to disk between runs.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt
from pydantic import BaseModel

logger = logging.getLogger(__name__)


def token_is_expired(
    token: Optional[str], now: Optional[datetime] = None, leeway: int = 0
) -> bool:
    """
    True when the token's `exp` claim is in the past (minus `leeway` seconds).

    The signature is not checked here; the server does that. A token that
    cannot be decoded or has no `exp` counts as expired.
    """
    if not token:
        return True
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return True

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return True

    now = now or datetime.now(timezone.utc)
    return now.timestamp() >= exp - leeway


class AuthSession(BaseModel):
    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def login(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self.token = token
        self.user = user

    def clear(self) -> None:
        self.token = None
        self.user = None

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.model_dump_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "AuthSession":
        """Reads a saved session; a missing or corrupt file gives an empty one."""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning(f"Ignoring unreadable session file: {path}")
            return cls()
