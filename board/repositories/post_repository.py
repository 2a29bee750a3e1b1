import functools

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure

from board.errors import InvalidPostIdError, StoreUnavailableError
from board.models.post_model import Post, next_update_time, to_document_fields, utcnow


NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def _store_call(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConnectionFailure as e:
            raise StoreUnavailableError("Lost connection to MongoDB") from e
    return wrapper


def _object_id(post_id) -> ObjectId:
    if not isinstance(post_id, str) or not ObjectId.is_valid(post_id):
        raise InvalidPostIdError(f"Invalid post id: {post_id}")
    return ObjectId(post_id)


def _post_or_none(document):
    if document is None:
        return None
    return Post.from_document(document)


class MongoPostRepository:
    """Posts stored in a MongoDB collection."""

    def __init__(self, connection, collection_name: str = "posts"):
        self.connection = connection
        self.collection_name = collection_name

    def connect(self):
        return self.connection.connect()

    def _collection(self):
        return self.connection.database()[self.collection_name]

    @_store_call
    def ping(self):
        """Send a ``ping`` command, so an outage shows even with a cached client."""
        self.connection.database().command("ping")

    @_store_call
    def create(self, fields):
        now = utcnow()
        document = {
            "title": fields["title"],
            "author": fields["author"],
            "content": fields["content"],
            "createdAt": now,
            "updatedAt": now,
        }
        if fields.get("owner_id"):
            document["ownerId"] = fields["owner_id"]

        result = self._collection().insert_one(document)
        document["_id"] = result.inserted_id
        return Post.from_document(document)

    @_store_call
    def find(self):
        cursor = self._collection().find().sort(NEWEST_FIRST)
        return [Post.from_document(document) for document in cursor]

    @_store_call
    def find_by_id(self, post_id):
        return _post_or_none(self._collection().find_one({"_id": _object_id(post_id)}))

    @_store_call
    def find_by_id_and_update(self, post_id, fields):
        object_id = _object_id(post_id)
        collection = self._collection()

        existing = collection.find_one({"_id": object_id})
        if existing is None:
            return None

        changes = to_document_fields(fields)
        changes["updatedAt"] = next_update_time(existing["updatedAt"])
        document = collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return _post_or_none(document)

    @_store_call
    def find_by_id_and_delete(self, post_id):
        return _post_or_none(
            self._collection().find_one_and_delete({"_id": _object_id(post_id)})
        )

    @_store_call
    def replace_all(self, documents):
        """Delete every post and insert ``documents``; returns the inserted posts."""
        collection = self._collection()
        collection.delete_many({})

        now = utcnow()
        prepared = []
        for document in documents:
            prepared.append({
                **document,
                "createdAt": document.get("createdAt", now),
                "updatedAt": document.get("updatedAt", document.get("createdAt", now)),
            })
        if prepared:
            collection.insert_many(prepared)
        return [Post.from_document(document) for document in prepared]

    @_store_call
    def cleanup(self, keep: int = 0, pattern: str = None):
        collection = self._collection()
        before = collection.count_documents({})

        if pattern:
            regex = {"$regex": pattern, "$options": "i"}
            query = {"$or": [{"title": regex}, {"author": regex}, {"content": regex}]}
        elif keep > 0:
            kept = collection.find().sort(NEWEST_FIRST).limit(keep)
            query = {"_id": {"$nin": [document["_id"] for document in kept]}}
        else:
            query = {}

        collection.delete_many(query)
        remaining = collection.count_documents({})
        return {"deleted": before - remaining, "remaining": remaining}
