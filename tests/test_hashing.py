from __future__ import annotations

import hashlib
import re
import secrets

import pytest

from assessment import hashing
from assessment.errors import ValidationError


def test_salt_is_32_hex_characters() -> None:
    salt = hashing.generate_salt()
    assert re.fullmatch(r"[0-9a-f]{32}", salt)


def test_salts_are_not_reused() -> None:
    salts = {hashing.generate_salt() for _ in range(100)}
    assert len(salts) == 100


def test_hash_is_sha256_of_secret_followed_by_salt() -> None:
    assert hashing.compute_hash("a", "bc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )
    salt = "0123456789abcdef0123456789abcdef"
    expected = hashlib.sha256(("pw1" + salt).encode("utf-8")).hexdigest()
    assert hashing.compute_hash("pw1", salt) == expected


def test_hash_is_deterministic() -> None:
    salt = hashing.generate_salt()
    first = hashing.compute_hash("correct horse", salt)
    assert first == hashing.compute_hash("correct horse", salt)
    assert len(first) == 64


def test_distinct_salts_give_distinct_hashes() -> None:
    salts = {secrets.token_hex(16) for _ in range(200)}
    digests = {hashing.compute_hash("same-password", salt) for salt in salts}
    assert len(digests) == len(salts)


def test_verify_accepts_only_the_matching_secret() -> None:
    salt = hashing.generate_salt()
    digest = hashing.compute_hash("s3cret", salt)

    assert hashing.verify("s3cret", salt, digest)
    assert not hashing.verify("S3cret", salt, digest)
    assert not hashing.verify("s3cret", hashing.generate_salt(), digest)
    assert not hashing.verify("s3cret", salt, "")


def test_oversized_password_is_rejected() -> None:
    salt = hashing.generate_salt()
    with pytest.raises(ValidationError):
        hashing.compute_hash("x" * 5000, salt)
    assert not hashing.verify("x" * 5000, salt, hashing.compute_hash("x", salt))
