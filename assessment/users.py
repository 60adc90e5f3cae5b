"""User registration and lookups against the ``users`` collection."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from . import hashing
from .errors import (
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    UniqueConstraintViolation,
    ValidationError,
)
from .identifiers import Identifier, parse_identifier
from .models import AccountType, RegistrationResult, StudentSummary, User
from .storage import DocumentStore

USERS = "users"

# Fields a logged-in user may change on their own record.
UPDATABLE_FIELDS = ("hash", "salt", "full_name")

logger = logging.getLogger("assessment.users")


class UserDirectory:
    """Create users and resolve them by identifier or username."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def create_user(
        self,
        username: str,
        password: str,
        full_name: str,
        account_type: Optional[str] = None,
    ) -> Identifier:
        """Persist a new user and return its identifier.

        Raises :class:`DuplicateError` when the username is taken,
        :class:`ValidationError` when the password is too long to hash and
        :class:`StorageError` for any other persistence failure.
        """

        salt = hashing.generate_salt()
        document = {
            "user_name": username,
            "hash": hashing.compute_hash(password, salt),
            "salt": salt,
            "full_name": full_name,
            "account_type": AccountType.coerce(account_type).value,
        }

        try:
            user_id = self._store.create(USERS, document)
        except UniqueConstraintViolation as exc:
            logger.info("Rejected registration for existing user name %r", username)
            raise DuplicateError(
                username,
                f"Duplicate key: The user name '{username}' already exists.",
            ) from exc

        logger.info("Registered %s account %s (%s)", document["account_type"], user_id, username)
        return user_id

    def register(
        self,
        username: str,
        password: str,
        full_name: str,
        account_type: Optional[str] = None,
    ) -> RegistrationResult:
        """Like :meth:`create_user`, but report the outcome instead of raising."""

        try:
            user_id = self.create_user(username, password, full_name, account_type)
        except (DuplicateError, ValidationError) as exc:
            return RegistrationResult(created=False, message=str(exc))
        except StorageError:
            logger.exception("Failed to register user %r", username)
            return RegistrationResult(created=False, message="Unable to create the user account.")
        return RegistrationResult(created=True, user_id=user_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_user_by_id(self, user_id: object) -> User:
        identifier = parse_identifier(user_id)
        if identifier is None:
            raise ValidationError(f"Invalid user identifier: {user_id!r}")
        return self._get_one({"_id": identifier}, repr(str(identifier)))

    def get_user_by_username(self, username: str) -> User:
        if not isinstance(username, str):
            raise ValidationError("User name must be a string")
        return self._get_one({"user_name": username}, repr(username))

    def find_user_by_id(self, user_id: object) -> Optional[User]:
        try:
            return self.get_user_by_id(user_id)
        except (ValidationError, NotFoundError):
            return None
        except StorageError:
            logger.exception("User lookup by identifier failed")
            return None

    def find_user_by_username(self, username: str) -> Optional[User]:
        try:
            return self.get_user_by_username(username)
        except (ValidationError, NotFoundError):
            return None
        except StorageError:
            logger.exception("User lookup by name failed")
            return None

    def _get_one(self, filter: Dict[str, object], description: str) -> User:
        # The unique index should make ambiguity impossible; count anyway.
        matches = self._store.read(USERS, filter)
        if len(matches) != 1:
            raise NotFoundError(f"Expected exactly one user matching {description}, found {len(matches)}")
        ((user_id, document),) = matches.items()
        return User.from_document(user_id, document)

    def list_students(self) -> Dict[str, StudentSummary]:
        """Return username and full name of every student, keyed by identifier."""

        users = self._store.read(USERS, {"account_type": AccountType.STUDENT.value})
        return {
            str(user_id): StudentSummary(
                username=str(document["user_name"]),
                full_name=str(document["full_name"]),
            )
            for user_id, document in users.items()
        }

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    def set_user_fields(self, acting_user: Identifier, fields: Mapping[str, object]) -> None:
        """Update whitelisted fields in a single write, raising on rejection or failure.

        The caller is responsible for ensuring ``acting_user`` is the
        identity currently logged in.
        """

        rejected = [field for field in fields if field not in UPDATABLE_FIELDS]
        if rejected:
            raise PermissionDeniedError(f"Field '{rejected[0]}' may not be updated")
        if not fields:
            raise ValidationError("No fields to update")
        identifier = parse_identifier(acting_user)
        if identifier is None:
            raise ValidationError(f"Invalid user identifier: {acting_user!r}")
        if not self._store.update(USERS, {"_id": identifier}, fields):
            raise NotFoundError(f"No user with identifier {identifier}")

    def update_user_field(self, acting_user: Identifier, field: str, value: object) -> bool:
        return self._apply_update(acting_user, {field: value})

    def set_password(self, acting_user: Identifier, password: str) -> bool:
        """Store a fresh salt and hash for ``password``."""

        salt = hashing.generate_salt()
        try:
            password_hash = hashing.compute_hash(password, salt)
        except ValidationError as exc:
            logger.info("Rejected new password for user %s: %s", acting_user, exc)
            return False
        return self._apply_update(acting_user, {"hash": password_hash, "salt": salt})

    def _apply_update(self, acting_user: Identifier, fields: Mapping[str, object]) -> bool:
        try:
            self.set_user_fields(acting_user, fields)
        except PermissionDeniedError as exc:
            logger.warning("Rejected update for user %s: %s", acting_user, exc)
            return False
        except (ValidationError, NotFoundError):
            return False
        except StorageError:
            logger.exception("Failed to update user %s", acting_user)
            return False
        return True


__all__ = ["UPDATABLE_FIELDS", "USERS", "UserDirectory"]
