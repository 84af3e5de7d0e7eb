"""Cloudflare R2 object storage (S3-compatible) for listing images.

boto3 is synchronous, so every call runs via asyncio.to_thread. Uploaded
images are re-encoded with Pillow: the main image fits inside 1920x1080
(JPEG q85, never enlarged) and a 400x300 cover-cropped WebP thumbnail
(q80) is stored alongside it.

Key layout (folder is a listing id or drafts/<user_id>/<draft_id>):
    properties/<folder>/<uuid>.jpg
    properties/<folder>/thumbnails/<uuid>.webp

Presigned uploads are stored as sent, so their extension follows the
declared content type.
"""

import asyncio
import io
import logging
import uuid
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, ImageOps

from ..config import settings
from ..exceptions import StorageError
from ..utils.file_validation import ALLOWED_IMAGE_TYPES

log = logging.getLogger(__name__)

MAIN_SIZE = (1920, 1080)
THUMB_SIZE = (400, 300)
PRESIGN_EXPIRES = 3600


def optimize_image(data: bytes) -> bytes:
    """Fit inside 1920x1080 without enlarging; JPEG quality 85."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        img.thumbnail(MAIN_SIZE)
        if img.mode != "RGB":
            img = img.convert("RGB")
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=85)
        return out.getvalue()


def make_thumbnail(data: bytes) -> bytes:
    """Cover-crop to 400x300; WebP quality 80."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        thumb = ImageOps.fit(img.convert("RGB"), THUMB_SIZE)
        out = io.BytesIO()
        thumb.save(out, format="WEBP", quality=80)
        return out.getvalue()


def image_key(folder: str, extension: str) -> str:
    return f"properties/{folder}/{uuid.uuid4()}.{extension}"


def thumbnail_key(folder: str) -> str:
    return f"properties/{folder}/thumbnails/{uuid.uuid4()}.webp"


class R2Storage:
    def __init__(self, bucket: str | None = None, endpoint_url: str | None = None,
                 access_key: str | None = None, secret_key: str | None = None,
                 public_url: str | None = None):
        self.bucket = bucket or settings.r2_bucket_name
        self.public_base = (public_url or settings.r2_public_url).rstrip("/")
        self._client = boto3.client(
            "s3",
            region_name="auto",
            endpoint_url=endpoint_url or settings.r2_endpoint or None,
            aws_access_key_id=access_key or settings.r2_access_key_id or None,
            aws_secret_access_key=secret_key or settings.r2_secret_access_key or None,
        )

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{key}"

    async def upload_image(self, data: bytes, original_name: str, folder: str,
                           user_id: int) -> dict:
        """Store the optimized JPEG plus thumbnail. Returns url, key, thumbnail_url."""
        key = image_key(folder, "jpg")
        thumb_key = thumbnail_key(folder)
        uploaded_at = datetime.now(timezone.utc).isoformat()

        def _upload() -> None:
            main = optimize_image(data)
            thumb = make_thumbnail(data)
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=main,
                ContentType="image/jpeg",
                Metadata={
                    "user-id": str(user_id),
                    "folder": folder,
                    "original-name": original_name,
                    "uploaded-at": uploaded_at,
                },
            )
            self._client.put_object(
                Bucket=self.bucket,
                Key=thumb_key,
                Body=thumb,
                ContentType="image/webp",
                Metadata={
                    "user-id": str(user_id),
                    "folder": folder,
                    "type": "thumbnail",
                    "uploaded-at": uploaded_at,
                },
            )

        try:
            await asyncio.to_thread(_upload)
        except (ClientError, BotoCoreError, OSError) as e:
            log.error("R2 upload failed for %s: %s", key, e)
            raise StorageError("Image upload failed", key) from e

        return {
            "url": self.public_url(key),
            "key": key,
            "thumbnail_url": self.public_url(thumb_key),
        }

    async def delete_image(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            log.error("R2 delete failed for %s: %s", key, e)
            raise StorageError("Image deletion failed", key) from e

    async def signed_upload_url(self, folder: str, user_id: int, file_name: str,
                                content_type: str) -> dict:
        """Presigned PUT URL valid for one hour."""
        key = image_key(folder, ALLOWED_IMAGE_TYPES[content_type])

        def _sign() -> str:
            return self._client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ContentType": content_type,
                    "Metadata": {
                        "user-id": str(user_id),
                        "folder": folder,
                        "original-name": file_name,
                    },
                },
                ExpiresIn=PRESIGN_EXPIRES,
            )

        try:
            upload_url = await asyncio.to_thread(_sign)
        except (ClientError, BotoCoreError) as e:
            log.error("R2 presign failed for %s: %s", key, e)
            raise StorageError("Failed to generate upload URL", key) from e
        return {"upload_url": upload_url, "key": key, "public_url": self.public_url(key)}


_storage: R2Storage | None = None


def get_storage() -> R2Storage:
    """Lazily-built storage client (FastAPI dependency)."""
    global _storage
    if _storage is None:
        _storage = R2Storage()
    return _storage
