"""
tests/test_routers_uploads.py -- Tests for routers/uploads.py and connectors/r2_storage.py

Covers: image upload validation, property_id format, listing and draft
folder ownership on upload and delete, presigned URLs, key extensions,
image re-encoding and storage error mapping.

Called by: pytest
Depends on: app/routers/uploads.py, app/connectors/r2_storage.py, conftest.py
"""

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from app.connectors.r2_storage import R2Storage, get_storage, make_thumbnail, optimize_image
from app.exceptions import StorageError
from app.models import AuditLog


def _png(size=(64, 48)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


def _fake_storage() -> MagicMock:
    fake = MagicMock()
    fake.upload_image = AsyncMock(return_value={
        "url": "https://cdn.test/properties/1/a.jpg",
        "key": "properties/1/a.jpg",
        "thumbnail_url": "https://cdn.test/properties/1/thumbnails/a.webp",
    })
    fake.delete_image = AsyncMock(return_value=None)
    fake.signed_upload_url = AsyncMock(return_value={
        "upload_url": "https://r2.test/signed", "key": "properties/1/b.jpg",
        "public_url": "https://cdn.test/properties/1/b.jpg",
    })
    return fake


@pytest.fixture()
def storage(client):
    from app.main import app

    fake = _fake_storage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def anon_storage(anon_client):
    """Same fake storage for requests that carry a real bearer token."""
    from app.main import app

    fake = _fake_storage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


# ── Upload ───────────────────────────────────────────────────────────


class TestUploadImage:
    def test_valid_png(self, client, storage, test_user, test_property, db_session):
        content = _png()
        resp = client.post(
            "/api/upload/images",
            files={"file": ("voorgevel.png", content, "image/png")},
            data={"property_id": str(test_property.id)},
        )
        assert resp.status_code == 201
        assert resp.json()["key"] == "properties/1/a.jpg"
        storage.upload_image.assert_awaited_once_with(
            content, "voorgevel.png", str(test_property.id), test_user.id
        )
        assert db_session.query(AuditLog).filter_by(action="Image uploaded").count() == 1

    def test_draft_goes_under_callers_folder(self, client, storage, test_user):
        resp = client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": "draft-1"},
        )
        assert resp.status_code == 201
        assert storage.upload_image.await_args.args[2] == f"drafts/{test_user.id}/draft-1"

    @pytest.mark.parametrize("property_id", ["1/x", "../1", "1 x", "drafts/2/d", "1\\x"])
    def test_path_like_property_id_rejected(self, client, storage, test_property, property_id):
        resp = client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": property_id},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "property_id"
        storage.upload_image.assert_not_awaited()

    def test_unknown_listing_404(self, client, storage):
        resp = client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": "424242"},
        )
        assert resp.status_code == 404
        storage.upload_image.assert_not_awaited()

    def test_wrong_magic_bytes_rejected(self, client, storage):
        resp = client.post(
            "/api/upload/images",
            files={"file": ("foto.jpg", b"%PDF-1.4 not an image", "image/jpeg")},
            data={"property_id": "draft-1"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid file type. Only JPEG, PNG, and WebP are allowed."
        storage.upload_image.assert_not_awaited()

    def test_empty_file_rejected(self, client, storage):
        resp = client.post(
            "/api/upload/images",
            files={"file": ("leeg.png", b"", "image/png")},
            data={"property_id": "draft-1"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Empty file"

    def test_missing_property_id(self, client, storage):
        resp = client.post("/api/upload/images", files={"file": ("a.png", _png(), "image/png")})
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "property_id"

    def test_someone_elses_listing_forbidden(self, client, storage, db_session, buyer_user, test_property):
        test_property.user_id = buyer_user.id
        db_session.commit()
        resp = client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": str(test_property.id)},
        )
        assert resp.status_code == 403

    def test_storage_failure_502(self, client, storage):
        storage.upload_image.side_effect = StorageError("Image upload failed", "k")
        resp = client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": "draft-1"},
        )
        assert resp.status_code == 502
        assert resp.json()["error"] == "Image upload failed"

    def test_requires_login(self, anon_client):
        resp = anon_client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": "1"},
        )
        assert resp.status_code == 401


class TestUploadIntoForeignListing:
    """Non-owners cannot place objects under another listing's folder."""

    @pytest.fixture()
    def s3(self, anon_client):
        from app.main import app

        with patch("app.connectors.r2_storage.boto3.client") as make_client:
            real = R2Storage(bucket="b", public_url="https://cdn.test")
            app.dependency_overrides[get_storage] = lambda: real
            yield make_client.return_value
        app.dependency_overrides.pop(get_storage, None)

    @pytest.mark.parametrize("property_id", ["1", "1/x"])
    def test_buyer_cannot_write_under_listing(self, anon_client, s3, auth_header, buyer_user, test_property,
                                              property_id):
        resp = anon_client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": property_id.replace("1", str(test_property.id), 1)},
            headers=auth_header(buyer_user),
        )
        assert resp.status_code in (400, 403)
        s3.put_object.assert_not_called()

    def test_buyer_draft_stays_in_own_folder(self, anon_client, s3, auth_header, buyer_user):
        resp = anon_client.post(
            "/api/upload/images",
            files={"file": ("a.png", _png(), "image/png")},
            data={"property_id": "nieuw"},
            headers=auth_header(buyer_user),
        )
        assert resp.status_code == 201
        keys = [c.kwargs["Key"] for c in s3.put_object.call_args_list]
        assert all(k.startswith(f"properties/drafts/{buyer_user.id}/nieuw/") for k in keys)
        assert keys[0].endswith(".jpg")


# ── Delete ───────────────────────────────────────────────────────────


class TestDeleteImage:
    def test_delete_own_listing_image(self, client, storage, test_property):
        key = f"properties/{test_property.id}/abc.jpg"
        resp = client.request("DELETE", "/api/upload/images", json={"key": key})
        assert resp.status_code == 200
        storage.delete_image.assert_awaited_once_with(key)

    def test_delete_own_draft_image(self, client, storage, test_user):
        key = f"properties/drafts/{test_user.id}/draft-1/abc.jpg"
        resp = client.request("DELETE", "/api/upload/images", json={"key": key})
        assert resp.status_code == 200
        storage.delete_image.assert_awaited_once_with(key)

    def test_other_users_draft_forbidden(self, client, storage, buyer_user):
        key = f"properties/drafts/{buyer_user.id}/draft-1/abc.jpg"
        resp = client.request("DELETE", "/api/upload/images", json={"key": key})
        assert resp.status_code == 403
        storage.delete_image.assert_not_awaited()

    def test_admin_may_delete_any_draft(self, anon_client, anon_storage, auth_header, admin_user, buyer_user):
        key = f"properties/drafts/{buyer_user.id}/draft-1/abc.jpg"
        resp = anon_client.request(
            "DELETE", "/api/upload/images", json={"key": key}, headers=auth_header(admin_user)
        )
        assert resp.status_code == 200

    def test_other_users_listing_forbidden(self, client, storage, db_session, buyer_user, test_property):
        test_property.user_id = buyer_user.id
        db_session.commit()
        resp = client.request(
            "DELETE", "/api/upload/images", json={"key": f"properties/{test_property.id}/abc.jpg"}
        )
        assert resp.status_code == 403

    def test_removed_listing_needs_admin(self, client, storage):
        resp = client.request("DELETE", "/api/upload/images", json={"key": "properties/424242/abc.jpg"})
        assert resp.status_code == 403

    @pytest.mark.parametrize("key", [
        "other/1/a.jpg",
        "properties/a.jpg",
        "properties/../../etc",
        "properties/1//a.jpg",
        "properties/abc/a.jpg",
        "properties/drafts/1/a.jpg",
        "properties/drafts/x/d/a.jpg",
    ])
    def test_invalid_key(self, client, storage, key):
        resp = client.request("DELETE", "/api/upload/images", json={"key": key})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid image key"
        storage.delete_image.assert_not_awaited()


# ── Presigned URL ────────────────────────────────────────────────────


class TestPresignedUrl:
    def test_presigned(self, client, storage, test_user):
        resp = client.post("/api/upload/presigned-url", json={
            "file_name": "keuken.jpg", "property_id": "draft-7", "file_type": "image/jpg", "file_size": 1024,
        })
        assert resp.status_code == 200
        assert resp.json()["expires_in"] == 3600
        storage.signed_upload_url.assert_awaited_once_with(
            f"drafts/{test_user.id}/draft-7", test_user.id, "keuken.jpg", "image/jpeg"
        )

    def test_path_like_property_id_rejected(self, client, storage):
        resp = client.post("/api/upload/presigned-url", json={
            "file_name": "a.jpg", "property_id": "1/x", "file_type": "image/jpeg", "file_size": 10,
        })
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "property_id"
        storage.signed_upload_url.assert_not_awaited()

    def test_file_too_large(self, client, storage):
        resp = client.post("/api/upload/presigned-url", json={
            "file_name": "groot.jpg", "property_id": "1", "file_type": "image/jpeg",
            "file_size": 11 * 1024 * 1024,
        })
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "file_size"

    def test_unsupported_type(self, client, storage):
        resp = client.post("/api/upload/presigned-url", json={
            "file_name": "plaatje.gif", "property_id": "1", "file_type": "image/gif", "file_size": 10,
        })
        assert resp.status_code == 400


# ── Storage connector ────────────────────────────────────────────────


class TestR2Storage:
    def test_optimize_never_enlarges(self):
        out = Image.open(io.BytesIO(optimize_image(_png((64, 48)))))
        assert out.format == "JPEG"
        assert out.size == (64, 48)

    def test_optimize_fits_inside_main_size(self):
        out = Image.open(io.BytesIO(optimize_image(_png((3840, 1080)))))
        assert out.size == (1920, 540)

    def test_thumbnail_cover_crop(self):
        out = Image.open(io.BytesIO(make_thumbnail(_png((1000, 1000)))))
        assert out.format == "WEBP"
        assert out.size == (400, 300)

    @pytest.mark.asyncio
    async def test_upload_puts_main_and_thumbnail(self):
        with patch("app.connectors.r2_storage.boto3.client") as make_client:
            store = R2Storage(bucket="b", public_url="https://cdn.test/")
            result = await store.upload_image(_png(), "a.png", "12", 3)
        s3 = make_client.return_value
        assert s3.put_object.call_count == 2
        main, thumb = (c.kwargs for c in s3.put_object.call_args_list)
        assert main["Key"].startswith("properties/12/") and main["Key"].endswith(".jpg")
        assert main["ContentType"] == "image/jpeg"
        assert thumb["Key"].startswith("properties/12/thumbnails/")
        assert result["url"] == f"https://cdn.test/{main['Key']}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type,ext", [("image/png", "png"), ("image/webp", "webp"),
                                                  ("image/jpeg", "jpg")])
    async def test_presigned_key_follows_content_type(self, content_type, ext):
        with patch("app.connectors.r2_storage.boto3.client") as make_client:
            make_client.return_value.generate_presigned_url.return_value = "https://r2.test/signed"
            store = R2Storage(bucket="b", public_url="https://cdn.test")
            result = await store.signed_upload_url("drafts/3/d", 3, "pagina.html", content_type)
        assert result["key"].startswith("properties/drafts/3/d/")
        assert result["key"].endswith(f".{ext}")
        assert result["upload_url"] == "https://r2.test/signed"

    @pytest.mark.asyncio
    async def test_client_error_becomes_storage_error(self):
        with patch("app.connectors.r2_storage.boto3.client") as make_client:
            make_client.return_value.delete_object.side_effect = ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject"
            )
            store = R2Storage(bucket="b")
            with pytest.raises(StorageError) as exc:
                await store.delete_image("properties/1/a.jpg")
        assert exc.value.key == "properties/1/a.jpg"
