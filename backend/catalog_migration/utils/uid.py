"""Public identifiers for target catalog rows.

Target uids are 8 alphanumeric characters. Migrated rows derive theirs
from the legacy key so every run computes the same uid for the same
legacy entity.
"""

import hashlib
import re

UID_LENGTH = 8
UID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
UID_REGEX = re.compile(rf"^[A-Za-z0-9]{{{UID_LENGTH}}}$")


def is_valid_uid(value: str | None) -> bool:
    """Check whether a value is a well-formed uid."""
    return bool(value) and UID_REGEX.match(value) is not None  # type: ignore[arg-type]


def derive_uid(namespace: str, legacy_id: int) -> str:
    """Derive a stable uid from a legacy entity kind and id.

    Args:
        namespace: Entity kind, keeps ids of different tables apart
        legacy_id: Legacy primary key

    Returns:
        8 character alphanumeric uid
    """
    digest = hashlib.sha1(f"{namespace}:{legacy_id}".encode()).digest()
    number = int.from_bytes(digest, "big")
    chars = []
    for _ in range(UID_LENGTH):
        number, index = divmod(number, len(UID_ALPHABET))
        chars.append(UID_ALPHABET[index])
    return "".join(chars)
