"""Short-lived memory of recently created parents, used to link the next student.

Entries are scoped by a caller-chosen key (the ``X-Session-Id`` header) and
expire after a TTL. Requests without a key share the ``default`` scope, which
behaves like a single process-wide father/mother pair. State lives in the
worker process only.
"""
from __future__ import annotations
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

DEFAULT_SCOPE = "default"

FATHER = "father"
MOTHER = "mother"
ROLES = (FATHER, MOTHER)

# gendercode values as sent by the registration forms
GENDERCODE_ROLES = {"1": FATHER, "2": MOTHER}


def role_for_gendercode(gendercode) -> Optional[str]:
    """Return "father" for "1", "mother" for "2", None otherwise.

    Only the exact strings select a role; numbers and padded values do not.
    """
    if not isinstance(gendercode, str):
        return None
    return GENDERCODE_ROLES.get(gendercode)


class ParentLinkStore:
    """Thread-safe father/mother slots per scope with expiry."""

    def __init__(self, ttl_seconds: int = 3600, now: Optional[Callable[[], datetime]] = None):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._now = now or datetime.now
        self._entries: dict[tuple[str, str], tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def set_parent(self, role: str, guid: str, scope: str = DEFAULT_SCOPE) -> None:
        if role not in ROLES:
            raise ValueError(f"Unknown parent role: {role!r}")
        with self._lock:
            self._purge_expired()
            self._entries[(scope, role)] = (guid, self._now() + self.ttl)

    def get_parent(self, role: str, scope: str = DEFAULT_SCOPE) -> Optional[str]:
        with self._lock:
            self._purge_expired()
            entry = self._entries.get((scope, role))
            return entry[0] if entry else None

    def remember(self, gendercode, guid: str, scope: str = DEFAULT_SCOPE) -> Optional[str]:
        """Store ``guid`` under the role selected by ``gendercode``.

        Returns the role written, or None when the code is neither "1" nor "2"
        (nothing is stored in that case).
        """
        role = role_for_gendercode(gendercode)
        if role is not None:
            self.set_parent(role, guid, scope)
        return role

    def snapshot(self, scope: str = DEFAULT_SCOPE) -> dict[str, Optional[str]]:
        return {role: self.get_parent(role, scope) for role in ROLES}

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self) -> None:
        now = self._now()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
