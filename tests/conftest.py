from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from assessment.groups import GroupDirectory
from assessment.storage import DocumentStore
from assessment.users import UserDirectory


@pytest.fixture()
def store(tmp_path: Path) -> DocumentStore:
    db = DocumentStore(tmp_path / "assessment.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def users(store: DocumentStore) -> UserDirectory:
    return UserDirectory(store)


@pytest.fixture()
def groups(store: DocumentStore) -> GroupDirectory:
    return GroupDirectory(store)
