"""Domain models for users, sessions and distribution groups."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .identifiers import Identifier


class AccountType(str, Enum):
    STUDENT = "student"
    ASSESSOR = "assessor"

    @classmethod
    def coerce(cls, value: object) -> "AccountType":
        """Anything other than an explicit ``assessor`` request is a student account."""

        if value == cls.ASSESSOR.value:
            return cls.ASSESSOR
        return cls.STUDENT


@dataclass(frozen=True)
class User:
    """A user record as stored in the ``users`` collection."""

    id: Identifier
    username: str
    password_hash: str
    salt: str
    full_name: str
    account_type: AccountType

    @classmethod
    def from_document(cls, user_id: Identifier, document: Dict[str, object]) -> "User":
        return cls(
            id=user_id,
            username=str(document["user_name"]),
            password_hash=str(document["hash"]),
            salt=str(document["salt"]),
            full_name=str(document["full_name"]),
            account_type=AccountType.coerce(document.get("account_type")),
        )


@dataclass(frozen=True)
class CurrentUserView:
    """Denormalized view of the logged-in user, valid for a single request."""

    user_id: Identifier
    username: str
    full_name: str
    account_type: AccountType

    @classmethod
    def from_user(cls, user: User) -> "CurrentUserView":
        return cls(
            user_id=user.id,
            username=user.username,
            full_name=user.full_name,
            account_type=user.account_type,
        )

    @property
    def is_assessor(self) -> bool:
        return self.account_type is AccountType.ASSESSOR

    def to_dict(self) -> Dict[str, str]:
        return {
            "user_id": str(self.user_id),
            "user_name": self.username,
            "full_name": self.full_name,
            "account_type": self.account_type.value,
        }


@dataclass(frozen=True)
class StudentSummary:
    """The subset of a student record exposed to group membership pickers."""

    username: str
    full_name: str

    def to_dict(self) -> Dict[str, str]:
        return {"user_name": self.username, "full_name": self.full_name}


@dataclass(frozen=True)
class Group:
    """A named distribution group of student identifiers."""

    id: Identifier
    name: str
    members: Tuple[str, ...]

    @classmethod
    def from_document(cls, group_id: Identifier, document: Dict[str, object]) -> "Group":
        raw_members = document.get("members") or []
        return cls(
            id=group_id,
            name=str(document.get("name", "")),
            members=tuple(str(member) for member in raw_members),  # type: ignore[union-attr]
        )

    def to_dict(self) -> Dict[str, object]:
        return {"id": str(self.id), "name": self.name, "members": list(self.members)}


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a registration attempt as shown to callers."""

    created: bool
    user_id: Optional[Identifier] = None
    message: Optional[str] = None


__all__ = [
    "AccountType",
    "CurrentUserView",
    "Group",
    "RegistrationResult",
    "StudentSummary",
    "User",
]
