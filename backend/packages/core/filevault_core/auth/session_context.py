"""
Typed view over the browser session.

The signed session cookie holds the OIDC ``state``/``nonce`` pair, the cached
``userInfo`` projection and the passwordless session handle. Routers load a
``SessionContext`` from the raw session, hand it to the flow controllers and
write the returned context back.
"""

from collections.abc import MutableMapping
from typing import Any

from pydantic import BaseModel, ConfigDict

# Keys used inside the session cookie
STATE_KEY = "state"
NONCE_KEY = "nonce"
USER_INFO_KEY = "userInfo"
SESSION_HANDLE_KEY = "sessionHandle"

_FIELD_KEYS = {
    "state": STATE_KEY,
    "nonce": NONCE_KEY,
    "user_info": USER_INFO_KEY,
    "session_handle": SESSION_HANDLE_KEY,
}


class SessionContext(BaseModel):
    """Per-browser authentication state."""

    model_config = ConfigDict(frozen=True)

    state: str | None = None
    nonce: str | None = None
    user_info: dict[str, Any] | None = None
    session_handle: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_info is not None

    @classmethod
    def from_session(cls, session: MutableMapping[str, Any]) -> "SessionContext":
        """Read the context out of a raw session mapping."""
        return cls(**{field: session.get(key) for field, key in _FIELD_KEYS.items()})

    def write_to(self, session: MutableMapping[str, Any]) -> None:
        """Store the context into a raw session mapping, dropping unset fields."""
        for field, key in _FIELD_KEYS.items():
            value = getattr(self, field)
            if value is None:
                session.pop(key, None)
            else:
                session[key] = value

    def with_redirect_checks(self, state: str, nonce: str) -> "SessionContext":
        """Context carrying a fresh state/nonce pair for a new login attempt."""
        return self.model_copy(update={"state": state, "nonce": nonce})

    def without_redirect_checks(self) -> "SessionContext":
        """Context with the state/nonce pair consumed."""
        return self.model_copy(update={"state": None, "nonce": None})

    def authenticated(
        self, user_info: dict[str, Any], session_handle: str | None = None
    ) -> "SessionContext":
        """Context holding a freshly authenticated identity."""
        return self.model_copy(update={"user_info": user_info, "session_handle": session_handle})
