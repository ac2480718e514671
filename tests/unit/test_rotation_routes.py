"""HTTP tests for the rotation, intake, and health routes."""

import re
from unittest.mock import AsyncMock, patch

import pytest

from dal.image_dal import ImageDAL
from models.errors import StoreReadFailure, StoreWriteFailure

TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def upload(client, png_bytes, name="photo.png", uploader=None):
    data = {"uploader_name": uploader} if uploader else {}
    response = client.post("/intake", files={"image": (name, png_bytes, "image/png")}, data=data)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_get_returns_plain_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.text == "ok"

    def test_other_methods_are_not_allowed(self, client):
        assert client.post("/health").status_code == 405


class TestNextImages:
    def test_empty_store_returns_empty_list(self, client):
        response = client.get("/images")

        assert response.status_code == 200
        assert response.json() == []

    def test_fresh_images_are_returned_in_upload_order(self, client, png_bytes):
        first = upload(client, png_bytes, uploader="Aiko")
        second = upload(client, png_bytes)

        body = client.get("/images").json()

        assert [item["id"] for item in body] == [first["id"], second["id"]]
        for item in body:
            assert set(item) == {"id", "file_url", "is_new", "created_at"}
            assert item["is_new"] is True
            assert item["file_url"].startswith("/blobs/image_")
            assert TIMESTAMP.match(item["created_at"])

    def test_file_url_serves_the_uploaded_bytes(self, client, png_bytes):
        upload(client, png_bytes)
        (item,) = client.get("/images").json()

        response = client.get(item["file_url"])

        assert response.status_code == 200
        assert response.content == png_bytes

    def test_store_failure_is_opaque_500(self, client):
        with patch.object(ImageDAL, "list_by_state", AsyncMock(side_effect=StoreReadFailure("disk I/O error"))):
            response = client.get("/images")

        assert response.status_code == 500
        assert response.json() == {"error": "database error"}

    def test_reset_failure_is_opaque_500(self, client):
        with patch.object(ImageDAL, "reset_shown_and_list_all", AsyncMock(side_effect=StoreWriteFailure("locked"))):
            response = client.get("/images")

        assert response.status_code == 500
        assert response.json() == {"error": "database error"}

    def test_non_get_is_not_allowed(self, client):
        response = client.post("/images", json={})

        assert response.status_code == 405
        assert response.json() == {"error": "method not allowed"}


class TestDisplayed:
    def test_acknowledged_image_leaves_the_fresh_tier(self, client, png_bytes):
        first = upload(client, png_bytes)
        second = upload(client, png_bytes)

        response = client.post("/images/displayed", json={"id": first["id"]})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert [item["id"] for item in client.get("/images").json()] == [second["id"]]

    def test_acknowledging_twice_succeeds(self, client, png_bytes):
        image = upload(client, png_bytes)

        assert client.post("/images/displayed", json={"id": image["id"]}).status_code == 200
        assert client.post("/images/displayed", json={"id": image["id"]}).status_code == 200

    def test_unknown_id_is_reported(self, client):
        response = client.post("/images/displayed", json={"id": 4242})

        assert response.status_code == 404
        assert response.json() == {"error": "image not found"}

    @pytest.mark.parametrize(
        "body",
        [
            b"",
            b"not json",
            b"{}",
            b'{"id": "abc"}',
            b"[1]",
            b'{"id": true}',
            b'{"id": "1"}',
            b'{"id": 1.0}',
            b'{"id": 0}',
            b'{"id": -3}',
            b'{"id": 9223372036854775808}',
            b'{"id": 100000000000000000000000}',
        ],
    )
    def test_malformed_bodies_are_rejected_without_touching_store(self, client, body):
        with patch.object(ImageDAL, "mark_displayed", AsyncMock(return_value=True)) as mark:
            response = client.post("/images/displayed", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid request body"}
        mark.assert_not_awaited()

    def test_largest_sqlite_id_is_accepted(self, client):
        with patch.object(ImageDAL, "mark_displayed", AsyncMock(return_value=True)) as mark:
            response = client.post("/images/displayed", json={"id": 2**63 - 1})

        assert response.status_code == 200
        mark.assert_awaited_once_with(2**63 - 1)

    def test_store_failure_is_opaque_500(self, client):
        with patch.object(ImageDAL, "mark_displayed", AsyncMock(side_effect=StoreWriteFailure("locked"))):
            response = client.post("/images/displayed", json={"id": 1})

        assert response.status_code == 500
        assert response.json() == {"error": "database error"}

    def test_non_post_is_not_allowed(self, client):
        response = client.get("/images/displayed")

        assert response.status_code == 405
        assert response.json() == {"error": "method not allowed"}


class TestIntake:
    def test_non_image_upload_is_rejected(self, client):
        response = client.post("/intake", files={"image": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid image"}
        assert client.get("/images").json() == []

    def test_record_failure_reports_orphaned_blob(self, client, png_bytes):
        with patch.object(ImageDAL, "create_image", AsyncMock(side_effect=StoreWriteFailure("locked"))):
            response = client.post("/intake", files={"image": ("a.png", png_bytes, "image/png")})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "database error"
        assert body["blob_key"].startswith("image_")


def test_rotation_cycle_over_http(client, png_bytes):
    a = upload(client, png_bytes)
    b = upload(client, png_bytes)
    for image in (a, b):
        client.post("/images/displayed", json={"id": image["id"]})

    # Everything has been shown: the cycle restarts from the oldest image.
    body = client.get("/images").json()
    assert [item["id"] for item in body] == [a["id"], b["id"]]
    assert [item["is_new"] for item in body] == [False, False]

    client.post("/images/displayed", json={"id": a["id"]})
    assert [item["id"] for item in client.get("/images").json()] == [b["id"]]
