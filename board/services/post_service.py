import logging
from dataclasses import dataclass
from typing import Any, Optional

from marshmallow import ValidationError

from board.errors import (
    BoardError,
    MissingIdentityError,
    PostForbiddenError,
    PostValidationError,
    StorageFailureError,
    StoreUnavailableError,
)
from board.schemas.post_schema import post_create_schema, post_update_schema


FALLBACK_WARNING = (
    "The database is unreachable, so temporary in-memory storage is in use. "
    "Changes will be lost when the server restarts."
)
FALLBACK_WARNINGS = {
    "list": "The database is unreachable, so temporary in-memory posts are shown.",
    "create": "The database is unreachable, so this post is kept in temporary memory only.",
}


@dataclass
class StoreResult:
    value: Any
    used_fallback: bool = False
    warning: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.value is not None


def _load(schema, data):
    try:
        return schema.load(data if data is not None else {})
    except ValidationError as e:
        raise PostValidationError(e.messages) from e


class PostService:
    """Serves every post operation from MongoDB, or from memory when MongoDB is down.

    Reachability is decided per call, so the service goes back to MongoDB as
    soon as it answers again. Only ``StoreUnavailableError`` triggers the
    fallback; validation and ownership errors surface unchanged.
    """

    def __init__(self, durable, fallback, enforce_ownership: bool = True):
        self.durable = durable
        self.fallback = fallback
        self.enforce_ownership = enforce_ownership

    def list_posts(self) -> StoreResult:
        return self._run("list", lambda store: store.find())

    def get_post(self, post_id) -> StoreResult:
        return self._run("get", lambda store: store.find_by_id(post_id))

    def create_post(self, data, owner_id=None) -> StoreResult:
        fields = _load(post_create_schema, data)
        fields["owner_id"] = owner_id or fields.get("owner_id") or None
        return self._run("create", lambda store: store.create(fields))

    def update_post(self, post_id, data, owner_id=None) -> StoreResult:
        self._require_identity(owner_id)
        fields = _load(post_update_schema, data)

        def update(store):
            post = store.find_by_id(post_id)
            if post is None:
                return None
            self._check_owner(post, owner_id)
            return store.find_by_id_and_update(post_id, fields)

        return self._run("update", update)

    def delete_post(self, post_id, owner_id=None) -> StoreResult:
        self._require_identity(owner_id)

        def delete(store):
            post = store.find_by_id(post_id)
            if post is None:
                return None
            self._check_owner(post, owner_id)
            return store.find_by_id_and_delete(post_id)

        return self._run("delete", delete)

    def storage_backend(self) -> str:
        try:
            self.durable.ping()
        except StoreUnavailableError:
            return "memory"
        return "mongodb"

    def _require_identity(self, owner_id):
        if self.enforce_ownership and not owner_id:
            raise MissingIdentityError()

    def _check_owner(self, post, owner_id):
        if self.enforce_ownership and post.owner_id != owner_id:
            raise PostForbiddenError()

    def _run(self, operation: str, action) -> StoreResult:
        try:
            self.durable.connect()
            return StoreResult(action(self.durable))
        except StoreUnavailableError as e:
            logging.warning(
                f"MongoDB unavailable for '{operation}', using in-memory storage: {e}"
            )

        try:
            value = action(self.fallback)
        except BoardError:
            raise
        except Exception as e:
            logging.error(f"In-memory storage failed for '{operation}': {e}", exc_info=True)
            raise StorageFailureError("Both MongoDB and in-memory storage failed") from e

        return StoreResult(
            value,
            used_fallback=True,
            warning=FALLBACK_WARNINGS.get(operation, FALLBACK_WARNING),
        )
