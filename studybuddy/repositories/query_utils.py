"""Shared MongoDB query helpers."""

from bson import ObjectId
from bson.errors import InvalidId


def to_object_id(value):
    """Return an ObjectId for ``value`` or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value.strip())
    except (InvalidId, TypeError):
        return None


def parse_folder_param(value):
    """Map a folder id from a path or body to ``(ok, folder_oid_or_none)``.

    ``None``, ``""`` and the literal ``"null"`` all mean unfiled.
    """
    if value is None:
        return True, None
    raw = str(value).strip()
    if not raw or raw.lower() == 'null':
        return True, None
    folder_oid = to_object_id(raw)
    if folder_oid is None:
        return False, None
    return True, folder_oid
