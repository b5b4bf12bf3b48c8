"""Gate protected views on a resolved identity and decide who counts as admin."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, TypeVar

from ..clients.remote_store import AuthClient, Identity, Unsubscribe

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdminRequiredError(PermissionError):
    """Raised when a privileged action is attempted by a non-admin identity."""


@dataclass(frozen=True)
class AdminPolicy:
    """Allow-list of admin emails (case-insensitive) and identity tokens (uids)."""

    emails: frozenset[str] = field(default_factory=frozenset)
    uids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_values(cls, emails: Iterable[str] = (), uids: Iterable[str] = ()) -> "AdminPolicy":
        return cls(
            emails=frozenset(email.strip().lower() for email in emails if email and email.strip()),
            uids=frozenset(uid.strip() for uid in uids if uid and uid.strip()),
        )

    def is_admin(self, identity: Identity | None) -> bool:
        if identity is None:
            return False
        if identity.uid in self.uids:
            return True
        email = (identity.email or "").strip().lower()
        return bool(email) and email in self.emails

    def require(self, identity: Identity | None) -> Identity:
        if identity is None or not self.is_admin(identity):
            raise AdminRequiredError("Admin only.")
        return identity


class GuardState(str, Enum):
    PENDING = "pending"
    ALLOWED = "allowed"
    REDIRECT = "redirect"


class SessionGuard:
    """Per-view auth gate.

    Stays ``PENDING`` until the auth client reports the first state, then
    either exposes the identity or navigates to the sign-in path. Nothing is
    cached between mounts.
    """

    def __init__(
        self,
        auth: AuthClient,
        *,
        navigate: Callable[[str], None],
        sign_in_path: str = "/login",
    ) -> None:
        self._auth = auth
        self._navigate = navigate
        self._sign_in_path = sign_in_path
        self._unsubscribe: Unsubscribe | None = None
        self._listeners: list[Callable[[GuardState], None]] = []
        self.state = GuardState.PENDING
        self.identity: Identity | None = None

    def mount(self) -> None:
        self.unmount()
        self.state = GuardState.PENDING
        self.identity = None
        self._unsubscribe = self._auth.on_auth_state_changed(self._on_auth_state)

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def on_change(self, listener: Callable[[GuardState], None]) -> None:
        self._listeners.append(listener)

    def _on_auth_state(self, identity: Identity | None) -> None:
        if self._unsubscribe is None:
            return
        self.identity = identity
        if identity is None:
            self.state = GuardState.REDIRECT
            logger.debug("No session; redirecting to %s", self._sign_in_path)
            self._navigate(self._sign_in_path)
        else:
            self.state = GuardState.ALLOWED
        for listener in list(self._listeners):
            listener(self.state)

    def render(self, children: T) -> T | None:
        """Return ``children`` only once an identity is confirmed."""

        return children if self.state is GuardState.ALLOWED else None


__all__ = ["AdminPolicy", "AdminRequiredError", "GuardState", "SessionGuard"]
