"""ULID helpers for primary keys and request ids."""

import ulid

ULID_LENGTH = 26


def generate_ulid() -> str:
    return str(ulid.new())
