"""Resolve the current request's session into a logged-in user."""
from __future__ import annotations

import logging
from typing import Optional

from . import hashing
from .identifiers import parse_identifier
from .models import CurrentUserView, User
from .sessions import SessionSlot
from .users import UserDirectory

logger = logging.getLogger("assessment.identity")


class SessionIdentityResolver:
    """Tie one request's session slot to a resolved user record.

    The resolver is either anonymous or authenticated as a single user.
    Identity is re-derived from the session value on construction, so a
    resolver must not outlive the request it was built for.
    """

    def __init__(self, session: SessionSlot, users: UserDirectory) -> None:
        self._session = session
        self._users = users
        self._user: Optional[User] = None
        self._view: Optional[CurrentUserView] = None
        self._resolve_session()

    def _resolve_session(self) -> None:
        if not self._session.exists():
            return
        identifier = parse_identifier(self._session.get())
        if identifier is None:
            logger.debug("Ignoring malformed session value")
            return
        user = self._users.find_user_by_id(identifier)
        if user is not None:
            self._authenticate(user)

    def _authenticate(self, user: User) -> None:
        self._user = user
        self._view = CurrentUserView.from_user(user)

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def current_user(self) -> Optional[CurrentUserView]:
        return self._view

    def login(self, username: str, password: str) -> bool:
        """Check the credentials and bind the session to the user on success.

        A failed attempt leaves any existing identity in place.
        """

        user = self._users.find_user_by_username(username)
        if user is None:
            logger.info("Login failed for unknown user name %r", username)
            return False
        if not hashing.verify(password, user.salt, user.password_hash):
            logger.info("Login failed for user %s: incorrect password", user.id)
            return False

        self._session.put(user.id)
        self._authenticate(user)
        logger.info("User %s logged in", user.id)
        return True

    def logout(self) -> bool:
        cleared = self._session.delete()
        if self._user is not None:
            logger.info("User %s logged out", self._user.id)
        return cleared

    def update_user(self, field: str, value: object) -> bool:
        """Update a whitelisted field on the logged-in user's record."""

        if self._user is None:
            logger.warning("Rejected update of %r without a logged-in user", field)
            return False
        if not self._users.update_user_field(self._user.id, field, value):
            return False
        self._refresh()
        return True

    def change_password(self, new_password: str) -> bool:
        if self._user is None:
            return False
        if not self._users.set_password(self._user.id, new_password):
            return False
        logger.info("User %s changed their password", self._user.id)
        self._refresh()
        return True

    def _refresh(self) -> None:
        if self._user is None:
            return
        refreshed = self._users.find_user_by_id(self._user.id)
        if refreshed is not None:
            self._authenticate(refreshed)


__all__ = ["SessionIdentityResolver"]
