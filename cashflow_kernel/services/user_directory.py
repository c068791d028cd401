"""
UserDirectory -- the lightweight credential check gating the ledger.

Responsibility:
    Holds the configured users, checks a user id/password pair, and keeps
    the logged-in user id in the key-value store so the session survives a
    restart.  ``actor_name()`` feeds ``recorded_by`` on new records.

Architecture position:
    Kernel > Services.  Users come from configuration; nothing is written
    back except the session key.

Invariants enforced:
    - Passwords are never stored; only their SHA-256 hex digest is
      configured, compared in constant time.
    - No logged-in user means the actor is ANONYMOUS_ACTOR.

Failure modes:
    - AuthenticationError on unknown user or wrong password.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from typing import Iterable

from cashflow_kernel.db.kv_store import KeyValueStore
from cashflow_kernel.domain.records import ANONYMOUS_ACTOR
from cashflow_kernel.exceptions import AuthenticationError
from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.user_directory")

_SESSION_KEY = "cashflow.session.user_id"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class User:
    user_id: str
    name: str
    role: str
    password_sha256: str


class UserDirectory:
    def __init__(self, users: Iterable[User], store: KeyValueStore):
        self._users = {u.user_id: u for u in users}
        self._store = store

    def users(self) -> tuple[User, ...]:
        return tuple(self._users.values())

    def login(self, user_id: str, password: str) -> User:
        user = self._users.get(user_id)
        candidate = hash_password(password)
        # Unknown users still go through compare_digest
        expected = user.password_sha256 if user else hash_password("")
        if user is None or not hmac.compare_digest(candidate, expected.lower()):
            logger.warning("login_failed", extra={"user_id": user_id})
            raise AuthenticationError(user_id)

        self._store.set(_SESSION_KEY, user.user_id)
        logger.info("login_succeeded", extra={"user_id": user.user_id})
        return user

    def logout(self) -> None:
        if self._store.delete(_SESSION_KEY):
            logger.info("logout")

    def current_user(self) -> User | None:
        user_id = self._store.get(_SESSION_KEY)
        if user_id is None:
            return None
        # A session for a user removed from configuration is ignored
        return self._users.get(user_id)

    def is_logged_in(self) -> bool:
        return self.current_user() is not None

    def actor_name(self) -> str:
        user = self.current_user()
        return user.name if user else ANONYMOUS_ACTOR
