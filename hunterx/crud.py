"""Data access helpers (CRUD) for character documents.

Each function performs exactly one store call so HTTP handlers can stay thin. All
functions are async and take the collection handle returned by
`hunterx.db.get_collection`. Names are the lookup key: matched case-insensitively
against the whole stored value, first match wins.
"""

import re
from typing import List, Dict, Any, Optional

from bson import Decimal128, ObjectId
from fastapi.encoders import jsonable_encoder
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

# BSON types FastAPI can't encode on its own (datetime etc. are handled)
_BSON_ENCODERS = {
    ObjectId: str,
    Decimal128: lambda d: float(d.to_decimal()),
}


class DuplicateCharacter(Exception):
    """A character with the same (case-insensitive) name already exists."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


def name_filter(name: str) -> Dict[str, Any]:
    """Build an anchored, case-insensitive filter matching `name` literally.

    "gon freecss" matches "Gon Freecss"; "gon" does not. Pattern characters in
    `name` are escaped, so "G.n" only matches a stored "G.n".

    Args:
        name: Raw name as received in the URL path.

    Returns:
        A Mongo filter on the `name` field.
    """
    return {"name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}}


def _doc_to_dict(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Map a stored document to a JSON-safe dict for the API.

    Stored documents are not checked against `CharacterRecord`, so anything the
    store holds is passed through: `ObjectId` values (including `_id`) become
    strings, datetimes ISO strings, nested documents and arrays are walked.

    Args:
        doc: A raw document as returned by the driver.

    Returns:
        A dict containing only JSON-encodable values.
    """
    return jsonable_encoder(doc, custom_encoder=_BSON_ENCODERS)


async def count_characters(coll: AsyncIOMotorCollection) -> int:
    """Return the total number of character documents.

    Args:
        coll: Characters collection handle.

    Returns:
        Document count as an integer.
    """
    return int(await coll.count_documents({}))


async def list_characters(coll: AsyncIOMotorCollection) -> List[Dict[str, Any]]:
    """Return every character document (no filter, no paging).

    Args:
        coll: Characters collection handle.

    Returns:
        List of API-shaped dicts in the store's natural order.
    """
    docs = await coll.find({}).to_list(length=None)
    return [_doc_to_dict(d) for d in docs]


async def get_character(
    coll: AsyncIOMotorCollection, name: str
) -> Optional[Dict[str, Any]]:
    """Return the first document whose name matches.

    Args:
        coll: Characters collection handle.
        name: Name to match case-insensitively.

    Returns:
        The API-shaped document, or None if nothing matches.
    """
    doc = await coll.find_one(name_filter(name))
    return _doc_to_dict(doc) if doc is not None else None


async def create_character(
    coll: AsyncIOMotorCollection,
    doc: Dict[str, Any],
    unique_names: bool = False,
) -> Dict[str, Any]:
    """Insert `doc` as a new character and return it with its generated `_id`.

    Duplicate names are accepted unless `unique_names` is set, in which case a
    case-insensitive collision raises `DuplicateCharacter`. The check and the
    insert are not atomic.

    Args:
        coll: Characters collection handle.
        doc: Fields to store; unknown keys are kept, a client `_id` is dropped.
        unique_names: Reject a name that already exists.

    Returns:
        The stored document, API-shaped.

    Raises:
        DuplicateCharacter: `unique_names` is set and the name is taken.
    """
    doc = dict(doc)
    doc.pop("_id", None)

    name = doc.get("name")
    if unique_names and isinstance(name, str):
        if await coll.find_one(name_filter(name)) is not None:
            raise DuplicateCharacter(name)

    result = await coll.insert_one(doc)
    doc["_id"] = result.inserted_id
    return _doc_to_dict(doc)


async def update_character(
    coll: AsyncIOMotorCollection, name: str, patch: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Merge `patch` into the first matching document and return the result.

    Fields not in `patch` are left untouched. An empty patch returns the current
    document.

    Args:
        coll: Characters collection handle.
        name: Name to match case-insensitively.
        patch: Fields to `$set`; a client `_id` is ignored.

    Returns:
        The post-update document, or None when nothing matches.
    """
    patch = {k: v for k, v in patch.items() if k != "_id"}
    if not patch:
        return await get_character(coll, name)

    doc = await coll.find_one_and_update(
        name_filter(name),
        {"$set": patch},
        return_document=ReturnDocument.AFTER,
    )
    return _doc_to_dict(doc) if doc is not None else None


async def delete_character(
    coll: AsyncIOMotorCollection, name: str
) -> Optional[Dict[str, Any]]:
    """Remove the first matching document and return it, or None."""
    doc = await coll.find_one_and_delete(name_filter(name))
    return _doc_to_dict(doc) if doc is not None else None
