import os
import re
import time

from gradeflow.core.errors import InvalidIdentifierError

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

# placeholder strings that leak out of broken links
_PLACEHOLDERS = {"undefined", "null"}


def new_object_id() -> str:
    """24-char hex id: 4-byte big-endian unix time + 8 random bytes."""
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()


def is_valid_identifier(value) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if value.strip().lower() in _PLACEHOLDERS:
        return False
    return OBJECT_ID_RE.match(value) is not None


def validate_identifier(value, label: str = "id") -> str:
    """Return the normalised (lowercase) identifier or raise InvalidIdentifierError."""
    if not is_valid_identifier(value):
        raise InvalidIdentifierError(label, value)
    return value.lower()
