from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def reveal(record: T) -> T:
    """Decrypt a record's sensitive fields if it knows how to.

    Records coming from an encrypting store may expose ``decrypt_fields``;
    plain records do not, and that is fine. The method may return a
    decrypted copy or mutate in place and return ``None``.
    """
    decrypt = getattr(record, "decrypt_fields", None)
    if not callable(decrypt):
        return record
    decrypted = decrypt()
    return record if decrypted is None else decrypted
