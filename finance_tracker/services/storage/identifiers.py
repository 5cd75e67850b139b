"""
Translation between MongoDB ObjectIds and the integer ids used by the API.

The integer id is the first four bytes of the ObjectId (its creation
timestamp) read as a number. It is lossy: ObjectIds created in the same
second share an integer id unless the document stores an explicit `id`
field, which is why the storage adapter writes one on insert.
"""

from bson import ObjectId

OBJECT_ID_HEX_LENGTH = 24
INTEGER_ID_HEX_PREFIX = 8


def integer_id_from_object_id(object_id: ObjectId) -> int:
    """Derive the public integer id from a native ObjectId."""
    return int(str(object_id)[:INTEGER_ID_HEX_PREFIX], 16)


def object_id_guess(integer_id: int) -> ObjectId:
    """
    Rebuild the ObjectId a legacy document might have.

    The decimal id is zero-padded to 24 characters. This never reproduces
    an ObjectId generated by the server; it only matches documents that
    were inserted with such a padded _id.

    Raises:
        bson.errors.InvalidId: If the id is negative or too long
    """
    return ObjectId(str(integer_id).zfill(OBJECT_ID_HEX_LENGTH))


def id_filter(integer_id: int) -> dict:
    """Query matching a document by explicit id field or by padded _id."""
    return {"$or": [{"id": integer_id}, {"_id": object_id_guess(integer_id)}]}
