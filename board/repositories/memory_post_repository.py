from dataclasses import replace
from itertools import count
from threading import Lock

from board.models.post_model import Post, next_update_time, utcnow


SAMPLE_POSTS = [
    {
        "title": "Sample post",
        "author": "Test user",
        "content": "This sample post is shown while the database is unreachable.",
        "owner_id": "system_user",
    },
]


class InMemoryPostRepository:
    """Volatile post storage used while MongoDB is unreachable.

    Records carry no schema checks; callers validate before ``create``.
    Every public method takes the lock and hands out copies, so a caller
    never sees another operation's half-applied change.
    """

    def __init__(self, seed=None):
        self._posts = []
        self._ids = count(1)
        self._lock = Lock()
        for fields in seed or []:
            self.create(fields)

    def create(self, fields):
        now = utcnow()
        with self._lock:
            post_id = str(next(self._ids))
            post = Post(
                id=post_id,
                title=fields["title"],
                author=fields["author"],
                content=fields["content"],
                created_at=now,
                updated_at=now,
                owner_id=fields.get("owner_id") or None,
            )
            self._posts.append(post)
            return replace(post)

    def find(self):
        with self._lock:
            ordered = sorted(
                self._posts,
                key=lambda post: (post.created_at, int(post.id)),
                reverse=True,
            )
            return [replace(post) for post in ordered]

    def find_by_id(self, post_id):
        with self._lock:
            index = self._index_of(post_id)
            if index is None:
                return None
            return replace(self._posts[index])

    def find_by_id_and_update(self, post_id, fields):
        with self._lock:
            index = self._index_of(post_id)
            if index is None:
                return None
            current = self._posts[index]
            updated = replace(
                current,
                **fields,
                updated_at=next_update_time(current.updated_at),
            )
            self._posts[index] = updated
            return replace(updated)

    def find_by_id_and_delete(self, post_id):
        with self._lock:
            index = self._index_of(post_id)
            if index is None:
                return None
            deleted = self._posts.pop(index)
            return deleted

    def _index_of(self, post_id):
        for index, post in enumerate(self._posts):
            if post.id == post_id:
                return index
        return None
