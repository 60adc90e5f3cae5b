"""Per-request session slot holding the logged-in user's identifier."""

from __future__ import annotations

from typing import MutableMapping, Optional

SESSION_USER_KEY = "user"


class SessionSlot:
    """Read and write a single named value in a request's session mapping.

    The mapping is normally Starlette's ``request.session``; tests pass a
    plain ``dict``. Nothing is kept server-side beyond this value.
    """

    def __init__(self, session: MutableMapping[str, object], *, key: str = SESSION_USER_KEY) -> None:
        self._session = session
        self._key = key

    def exists(self) -> bool:
        return self._session.get(self._key) is not None

    def get(self) -> Optional[object]:
        return self._session.get(self._key)

    def put(self, value: object) -> None:
        self._session[self._key] = str(value)

    def delete(self) -> bool:
        self._session.pop(self._key, None)
        return self._key not in self._session


__all__ = ["SESSION_USER_KEY", "SessionSlot"]
