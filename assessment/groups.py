"""Distribution groups: named lists of student identifiers used for bulk test issuance."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .errors import IdentityError, NotFoundError, StorageError, ValidationError
from .identifiers import Identifier, parse_identifier
from .models import AccountType, Group
from .storage import DocumentStore, StoreTransaction
from .users import USERS

GROUPS = "groups"

logger = logging.getLogger("assessment.groups")


class GroupDirectory:
    """Create, list, inspect and delete distribution groups.

    The store has no foreign keys, so member identifiers are checked here
    when a group is created. Nothing is re-checked afterwards: a member
    whose user record later disappears stays in the group.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def add_group(self, name: str, student_ids: Sequence[object]) -> Identifier:
        """Validate every member and insert the group, or write nothing at all.

        Validation and the insert share one transaction, so a member cannot
        be removed or re-typed between the check and the write. Member ids
        are stored in their normalised lower-case form, which is also how
        :meth:`group_members` reports them.
        """

        if not isinstance(name, str):
            raise ValidationError("Group name must be a string")
        if not isinstance(student_ids, (list, tuple)):
            raise ValidationError("Group members must be a list of identifiers")
        if not student_ids:
            raise ValidationError("A group needs at least one member")

        with self._store.transaction() as tx:
            members = [str(self._require_student(tx, raw_id)) for raw_id in student_ids]
            group_id = tx.create(GROUPS, {"name": name, "members": members})

        logger.info("Created group %s (%r) with %d member(s)", group_id, name, len(members))
        return group_id

    @staticmethod
    def _require_student(tx: StoreTransaction, raw_id: object) -> Identifier:
        identifier = parse_identifier(raw_id)
        if identifier is None:
            raise ValidationError(f"Invalid student identifier: {raw_id!r}")
        matches = tx.read(USERS, {"_id": identifier})
        if len(matches) != 1:
            raise NotFoundError(f"No user with identifier {identifier}")
        (document,) = matches.values()
        if document.get("account_type") != AccountType.STUDENT.value:
            raise ValidationError(f"User {identifier} is not a student")
        return identifier

    def create_group(self, name: str, student_ids: Sequence[object]) -> bool:
        try:
            self.add_group(name, student_ids)
        except (ValidationError, NotFoundError) as exc:
            logger.info("Rejected group %r: %s", name, exc)
            return False
        except StorageError:
            logger.exception("Failed to create group %r", name)
            return False
        return True

    def list_groups(self) -> List[Group]:
        try:
            documents = self._store.read(GROUPS)
        except StorageError:
            logger.exception("Failed to list groups")
            return []
        return [Group.from_document(group_id, document) for group_id, document in documents.items()]

    def get_group(self, group_id: object) -> Optional[Group]:
        identifier = parse_identifier(group_id)
        if identifier is None:
            return None
        try:
            matches = self._store.read(GROUPS, {"_id": identifier})
        except StorageError:
            logger.exception("Failed to load group %s", identifier)
            return None
        if len(matches) != 1:
            return None
        ((found_id, document),) = matches.items()
        return Group.from_document(found_id, document)

    def group_members(self, group_id: object) -> Optional[Dict[str, Optional[str]]]:
        """Map each member identifier to the member's full name.

        Returns ``None`` when the group does not exist. A member that no
        longer resolves to a user maps to ``None``.
        """

        group = self.get_group(group_id)
        if group is None:
            return None

        members: Dict[str, Optional[str]] = {}
        try:
            for member_id in group.members:
                users = self._store.read(USERS, {"_id": member_id})
                if len(users) == 1:
                    (document,) = users.values()
                    members[member_id] = str(document["full_name"])
                else:
                    logger.warning("Group %s refers to missing user %s", group.id, member_id)
                    members[member_id] = None
        except IdentityError:
            logger.exception("Failed to load members of group %s", group.id)
            return None
        return members

    def delete_group(self, group_id: object) -> bool:
        identifier = parse_identifier(group_id)
        if identifier is None:
            return False
        try:
            deleted = self._store.delete(GROUPS, {"_id": identifier})
        except StorageError:
            logger.exception("Failed to delete group %s", identifier)
            return False
        if deleted:
            logger.info("Deleted group %s", identifier)
        return deleted


__all__ = ["GROUPS", "GroupDirectory"]
