import unittest
import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import mongomock
from bson import ObjectId
from pymongo.errors import AutoReconnect, InvalidURI, ServerSelectionTimeoutError

from board import build_post_service, create_app
from board.config import TestingConfig
from board.errors import ConfigurationError
from board.extensions.mongo_client import MongoConnection
from board.repositories.memory_post_repository import InMemoryPostRepository
from board.repositories.post_repository import MongoPostRepository
from board.services.post_service import PostService


class FakeMongo:
    """Hands out one shared mongomock client while ``online`` is set."""

    def __init__(self):
        self.online = True
        self.client = mongomock.MongoClient()

    def __call__(self, uri, **kwargs):
        if not self.online:
            raise ServerSelectionTimeoutError("MongoDB is down")
        return self.client


class UnreachableConfig(TestingConfig):
    MONGODB_URI = "mongodb://127.0.0.1:1/board-test"


class MissingUriConfig(TestingConfig):
    MONGODB_URI = ""


class TestApiRoutes(unittest.TestCase):
    def setUp(self):
        self.mongo = FakeMongo()
        self.connection = MongoConnection(
            TestingConfig.MONGODB_URI,
            db_name=f"board-test-{uuid.uuid4().hex}",
            client_factory=self.mongo,
        )
        self.service = PostService(
            MongoPostRepository(self.connection),
            InMemoryPostRepository(),
        )
        self.app = create_app(TestingConfig, post_service=self.service)
        self.client = self.app.test_client()

    def _go_offline(self):
        self.mongo.online = False
        self.connection.close()

    def _create(self, owner="user_1", **overrides):
        body = {"title": "t", "author": "a", "content": "c", **overrides}
        headers = {"X-User-Id": owner} if owner else {}
        return self.client.post("/api/posts", json=body, headers=headers)

    def test_create_get_update_delete_flow(self):
        create_response = self._create()
        self.assertEqual(create_response.status_code, 201)
        created = create_response.get_json()
        self.assertTrue(created["success"])
        self.assertFalse(created["mock"])
        self.assertNotIn("warning", created)
        post = created["data"]
        self.assertTrue(post["id"])
        self.assertEqual(post["ownerId"], "user_1")
        self.assertEqual(post["createdAt"], post["updatedAt"])

        get_response = self.client.get(f"/api/posts/{post['id']}")
        self.assertEqual(get_response.status_code, 200)
        self.assertEqual(get_response.get_json()["data"]["title"], "t")

        update_response = self.client.put(
            f"/api/posts/{post['id']}",
            json={"content": "c2"},
            headers={"X-User-Id": "user_1"},
        )
        self.assertEqual(update_response.status_code, 200)
        updated = update_response.get_json()["data"]
        self.assertEqual(updated["content"], "c2")
        self.assertEqual(updated["title"], "t")
        self.assertGreater(updated["updatedAt"], updated["createdAt"])

        delete_response = self.client.delete(
            f"/api/posts/{post['id']}",
            headers={"X-User-Id": "user_1"},
        )
        self.assertEqual(delete_response.status_code, 200)
        self.assertEqual(delete_response.get_json()["data"], {})

        missing_response = self.client.get(f"/api/posts/{post['id']}")
        self.assertEqual(missing_response.status_code, 404)
        self.assertEqual(missing_response.get_json()["error"], "Post not found")

    def test_list_posts_newest_first(self):
        for title in ("first", "second", "third"):
            self._create(title=title)

        response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertFalse(payload["mock"])
        self.assertEqual([post["title"] for post in payload["data"]], ["third", "second", "first"])

    def test_empty_list_is_success(self):
        response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"], [])

    def test_offline_create_is_listed_first_with_warning(self):
        self._go_offline()

        create_response = self._create(title="offline post")
        self.assertEqual(create_response.status_code, 201)
        created = create_response.get_json()
        self.assertTrue(created["mock"])
        self.assertIn("warning", created)

        list_response = self.client.get("/api/posts")
        payload = list_response.get_json()
        self.assertTrue(payload["mock"])
        self.assertIn("warning", payload)
        self.assertEqual(payload["data"][0]["id"], created["data"]["id"])

    def test_offline_update_and_delete(self):
        self._go_offline()
        post_id = self._create().get_json()["data"]["id"]

        update_response = self.client.patch(
            f"/api/posts/{post_id}",
            json={"title": "patched"},
            headers={"X-User-Id": "user_1"},
        )
        self.assertEqual(update_response.status_code, 200)
        self.assertTrue(update_response.get_json()["mock"])
        self.assertEqual(update_response.get_json()["data"]["title"], "patched")

        delete_response = self.client.delete(
            f"/api/posts/{post_id}",
            headers={"X-User-Id": "user_1"},
        )
        self.assertEqual(delete_response.status_code, 200)
        self.assertTrue(delete_response.get_json()["mock"])
        self.assertEqual(self.client.get(f"/api/posts/{post_id}").status_code, 404)

    def test_create_rejects_invalid_json(self):
        response = self.client.post(
            "/api/posts",
            data="not-json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid JSON body")

    def test_create_rejects_missing_and_oversized_fields(self):
        missing = self._create(title="")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.get_json()["error"], "Title is required")
        self.assertIn("title", missing.get_json()["fields"])

        oversized = self._create(content="x" * 141)
        self.assertEqual(oversized.status_code, 400)
        self.assertEqual(
            oversized.get_json()["error"],
            "Content must be 140 characters or fewer",
        )

        self.assertEqual(self.client.get("/api/posts").get_json()["data"], [])

    def test_update_requires_identity(self):
        post_id = self._create().get_json()["data"]["id"]

        response = self.client.put(f"/api/posts/{post_id}", json={"title": "x"})

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.get_json()["success"])

    def test_update_and_delete_reject_other_owner(self):
        post_id = self._create(owner="owner").get_json()["data"]["id"]
        headers = {"X-User-Id": "intruder"}

        update_response = self.client.put(f"/api/posts/{post_id}", json={"title": "x"}, headers=headers)
        delete_response = self.client.delete(f"/api/posts/{post_id}", headers=headers)

        self.assertEqual(update_response.status_code, 403)
        self.assertEqual(delete_response.status_code, 403)
        self.assertEqual(self.client.get(f"/api/posts/{post_id}").get_json()["data"]["title"], "t")

    def test_update_and_delete_missing_post_return_404(self):
        missing = "64b7f0c2a1b2c3d4e5f60718"
        headers = {"X-User-Id": "user_1"}

        self.assertEqual(
            self.client.put(f"/api/posts/{missing}", json={"title": "x"}, headers=headers).status_code,
            404,
        )
        self.assertEqual(self.client.delete(f"/api/posts/{missing}", headers=headers).status_code, 404)

    def test_malformed_id_returns_400(self):
        response = self.client.get("/api/posts/not-an-id")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid post id: not-an-id")

    def test_unexpected_error_returns_500_with_details_when_enabled(self):
        with patch.object(PostService, "list_posts", side_effect=RuntimeError("kaboom")):
            with self.assertLogs(level="ERROR"):
                response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 500)
        payload = response.get_json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["details"], "kaboom")

    def test_unexpected_error_hides_details_when_disabled(self):
        self.app.config["EXPOSE_ERROR_DETAILS"] = False

        with patch.object(PostService, "list_posts", side_effect=RuntimeError("kaboom")):
            with self.assertLogs(level="ERROR"):
                response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 500)
        self.assertNotIn("details", response.get_json())

    def test_unknown_route_is_json_404(self):
        response = self.client.get("/api/nothing-here")

        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()["success"])

    def test_health_reports_active_storage(self):
        online = self.client.get("/api/health").get_json()
        self.assertEqual(online["data"]["storage"], "mongodb")
        self.assertFalse(online["mock"])

        self._go_offline()
        offline = self.client.get("/api/health").get_json()
        self.assertEqual(offline["data"]["storage"], "memory")
        self.assertTrue(offline["mock"])

    def test_health_reports_outage_of_cached_connection(self):
        self.assertEqual(self.client.get("/api/health").get_json()["data"]["storage"], "mongodb")

        with patch.object(self.connection, "database", side_effect=AutoReconnect("reset")):
            payload = self.client.get("/api/health").get_json()

        self.assertEqual(payload["data"]["storage"], "memory")
        self.assertFalse(payload["data"]["durable"])
        self.assertTrue(payload["mock"])

    def test_timestamps_always_carry_milliseconds(self):
        post_id = self._create().get_json()["data"]["id"]
        whole_second = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.service.durable._collection().update_one(
            {"_id": ObjectId(post_id)},
            {"$set": {"createdAt": whole_second, "updatedAt": whole_second}},
        )

        post = self.client.get(f"/api/posts/{post_id}").get_json()["data"]

        self.assertEqual(post["createdAt"], "2024-01-01T00:00:00.000Z")
        self.assertEqual(post["updatedAt"], "2024-01-01T00:00:00.000Z")

    def test_misconfigured_mongodb_uri_is_not_served_from_memory(self):
        def bad_uri_factory(uri, **kwargs):
            raise InvalidURI("Invalid URI scheme")

        self.connection._client_factory = bad_uri_factory
        self.connection.close()

        with self.assertLogs(level="ERROR"):
            response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.get_json()["success"])
        self.assertIn("Invalid MongoDB configuration", response.get_json()["error"])


class TestAppFactory(unittest.TestCase):
    def test_missing_mongodb_uri_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            create_app(MissingUriConfig)

    def test_build_post_service_reads_config(self):
        service = build_post_service({
            "MONGODB_URI": "mongodb://localhost:27017",
            "MONGODB_COLLECTION": "notes",
            "SEED_FALLBACK": True,
            "ENFORCE_OWNERSHIP": False,
        })

        self.assertEqual(service.durable.collection_name, "notes")
        self.assertFalse(service.enforce_ownership)
        self.assertEqual(len(service.fallback.find()), 1)

    def test_unreachable_mongodb_serves_from_memory(self):
        app = create_app(UnreachableConfig)
        client = app.test_client()

        with self.assertLogs(level="WARNING"):
            create_response = client.post(
                "/api/posts",
                json={"title": "t", "author": "a", "content": "c"},
                headers={"X-User-Id": "user_1"},
            )

        self.assertEqual(create_response.status_code, 201)
        self.assertTrue(create_response.get_json()["mock"])
        self.assertEqual(create_response.get_json()["data"]["id"], "1")


class TestCommands(unittest.TestCase):
    def setUp(self):
        self.mongo = FakeMongo()
        connection = MongoConnection(
            TestingConfig.MONGODB_URI,
            db_name=f"board-test-{uuid.uuid4().hex}",
            client_factory=self.mongo,
        )
        self.durable = MongoPostRepository(connection)
        self.connection = connection
        service = PostService(self.durable, InMemoryPostRepository())
        self.app = create_app(TestingConfig, post_service=service)
        self.runner = self.app.test_cli_runner()

    def test_seed_posts_replaces_collection(self):
        self.durable.create({"title": "stale", "author": "a", "content": "c"})

        result = self.runner.invoke(args=["seed-posts"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Created 7 posts", result.output)
        posts = self.durable.find()
        self.assertEqual(len(posts), 7)
        self.assertEqual(posts[-1].title, "Old post")
        self.assertNotIn("stale", [post.title for post in posts])

    def test_cleanup_posts_keeps_newest(self):
        self.runner.invoke(args=["seed-posts"])

        result = self.runner.invoke(args=["cleanup-posts", "--keep", "2"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Deleted 5 posts, 2 remaining", result.output)

    def test_cleanup_posts_by_pattern(self):
        self.runner.invoke(args=["seed-posts"])

        result = self.runner.invoke(args=["cleanup-posts", "--pattern", "special"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Deleted 1 posts, 6 remaining", result.output)

    def test_commands_fail_cleanly_when_offline(self):
        self.mongo.online = False
        self.connection.close()

        result = self.runner.invoke(args=["seed-posts"])

        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Could not connect to MongoDB", result.output)


if __name__ == "__main__":
    unittest.main()
