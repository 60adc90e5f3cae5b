"""Identity, session and distribution-group core of the assessment platform."""

from __future__ import annotations

from typing import Any

from .storage import DocumentStore, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the identity web application."""

    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "DocumentStore",
    "resolve_database_path",
    "create_app",
]
