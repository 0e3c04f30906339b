"""Tests for the app factory, error handling and the JSON surface."""

from __future__ import annotations

import io
import unittest
from unittest.mock import patch

from flask import request
from google.api_core.exceptions import ServiceUnavailable
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from campusconnect import create_app
from campusconnect.extensions import presence_tracker
from campusconnect.errors import TransientUnavailable
from tests.conftest import (
    T0,
    FakeRealtime,
    add_user,
    inbox,
    make_db,
    patch_service_firestore,
)

TEST_CONFIG = {"TESTING": True, "WTF_CSRF_ENABLED": False, "SERVER_NAME": "localhost"}


class AppTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        patch_service_firestore(self, self.db)
        patcher = patch("firebase_admin.firestore.client", return_value=self.db)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.app = create_app(TEST_CONFIG)
        self.app.extensions["presence"]._reference_factory = FakeRealtime()
        self.client = self.app.test_client()
        self.alice = add_user(self.db, "alice", displayName="Alice")
        self.bob = add_user(self.db, "bob", displayName="Bob")

    def _sign_in(self, uid: str) -> None:
        with self.client.session_transaction() as sess:
            sess["user_id"] = uid
            sess["connection_id"] = f"conn-{uid}"

    def test_404_is_json(self) -> None:
        response = self.client.get("/non_existent_page")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "Not found."})

    def test_login_required(self) -> None:
        response = self.client.get("/notifications/")
        self.assertEqual(response.status_code, 401)

    def test_unknown_session_user_is_signed_out(self) -> None:
        self._sign_in("ghost")
        self.assertEqual(self.client.get("/notifications/").status_code, 401)

    def test_post_like_and_inbox(self) -> None:
        self._sign_in("alice")
        created = self.client.post("/feed/", json={"content": "Hello campus"})
        self.assertEqual(created.status_code, 201)
        post_id = created.get_json()["id"]

        self._sign_in("bob")
        liked = self.client.post(f"/feed/{post_id}/like")
        self.assertEqual(liked.get_json(), {"liked": True})

        self._sign_in("alice")
        response = self.client.get("/notifications/")
        body = response.get_json()
        self.assertEqual(body["unread"], 1)
        self.assertEqual(body["notifications"][0]["type"], "like")
        self.assertEqual(len(inbox(self.db, "alice")), 1)

    def test_service_errors_map_to_status_codes(self) -> None:
        self._sign_in("alice")
        self.assertEqual(self.client.post("/feed/", json={"content": ""}).status_code, 400)
        self.assertEqual(self.client.get("/feed/missing").status_code, 404)
        self.assertEqual(self.client.post("/connections/alice/request").status_code, 400)

    def test_store_outage_is_retryable(self) -> None:
        self._sign_in("alice")
        with patch(
            "campusconnect.feed.routes.list_posts", side_effect=ServiceUnavailable("down")
        ):
            response = self.client.get("/feed/")
        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.get_json()["retryable"])

    def test_transient_error_carries_no_draft_by_default(self) -> None:
        @self.app.route("/flaky")
        def flaky():
            raise TransientUnavailable("Could not send.")

        response = self.client.get("/flaky")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.get_json(), {"error": "Could not send.", "retryable": True})

    def test_json_provider_handles_firestore_values(self) -> None:
        with self.app.app_context():
            encoded = self.app.json.dumps({"pending": SERVER_TIMESTAMP, "at": T0})
        self.assertEqual(encoded, '{"at": "2024-09-02T09:00:00+00:00", "pending": null}')

    def test_https_scheme_with_proxy_headers(self) -> None:
        @self.app.route("/test_scheme")
        def test_scheme():
            return request.scheme

        response = self.client.get("/test_scheme", headers={"X-Forwarded-Proto": "https"})
        self.assertEqual(response.data.decode(), "https")

    def test_presence_blueprint_is_registered(self) -> None:
        self.assertIs(self.app.extensions["presence"], presence_tracker)
        self._sign_in("alice")
        response = self.client.post("/presence/heartbeat")
        self.assertEqual(response.get_json(), {"status": "online"})
        self.assertEqual(self.client.get("/presence/").get_json(), {"alice": "online"})

    def test_send_direct_message(self) -> None:
        self._sign_in("alice")
        response = self.client.post("/messages/dm/alice_bob", json={"text": "hey"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["text"], "hey")
        self.assertEqual([n["type"] for n in inbox(self.db, "bob")], ["direct_message"])

    def test_failed_send_returns_draft_and_discards_upload(self) -> None:
        self._sign_in("alice")
        with patch("campusconnect.messaging.routes.BlobStore") as blob_store, patch(
            "campusconnect.messaging.services.MessageService.append",
            side_effect=ServiceUnavailable("down"),
        ):
            blobs = blob_store.return_value
            blobs.upload.side_effect = lambda path, data, content_type: path
            blobs.get_url.return_value = "https://cdn/cat.png"
            response = self.client.post(
                "/messages/dm/alice_bob",
                data={"text": "look", "image": (io.BytesIO(b"png"), "cat.png")},
                content_type="multipart/form-data",
            )

        self.assertEqual(response.status_code, 503)
        body = response.get_json()
        self.assertTrue(body["retryable"])
        self.assertEqual(body["draft"]["text"], "look")
        self.assertTrue(body["draft"]["imagePath"].startswith("dms/alice_bob/"))
        blobs.discard.assert_called_once_with(body["draft"]["imagePath"])
