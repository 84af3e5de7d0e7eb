"""
routers/uploads.py — Listing images in object storage

Business Rules:
- Signed-in users only; 50 uploads per hour per IP
- JPEG, PNG and WebP up to 10 MB, checked by magic bytes
- property_id is either a numeric listing id or a draft id
  (letters, digits, "-" and "_"); anything else is rejected
- Numeric ids must name an existing listing the caller owns (or the
  caller is an admin); images go under properties/<id>/
- Draft images go under properties/drafts/<user_id>/<draft_id>/ so every
  stored key records who may delete it
- Deleting requires the key to sit under a listing or draft folder the
  caller owns

Called by: main.py (router mount)
Depends on: connectors/r2_storage, utils/file_validation
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from ..connectors.r2_storage import R2Storage, get_storage
from ..database import get_db
from ..dependencies import ensure_owner_or_admin, is_admin, require_user
from ..models import Property, User
from ..rate_limit import enforce_rate_limit
from ..schemas.uploads import PROPERTY_ID_PATTERN, ImageDeleteRequest, PresignedUrlRequest
from ..services.audit_service import record_audit
from ..utils.file_validation import validate_image

router = APIRouter(tags=["uploads"])

UPLOAD_LIMIT = (50, 3600)
DRAFTS = "drafts"


def _is_id(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _storage_folder(db: Session, user: User, property_id: str) -> str:
    """Folder under properties/ for this caller, after the access check."""
    if _is_id(property_id):
        prop = db.get(Property, int(property_id))
        if prop is None:
            raise HTTPException(404, "Property not found")
        ensure_owner_or_admin(user, prop.user_id)
        return str(prop.id)
    return f"{DRAFTS}/{user.id}/{property_id}"


def _check_delete_access(db: Session, user: User, key: str) -> str:
    """Validate an image key and return the listing or draft id it belongs to."""
    parts = key.split("/")
    if parts[0] != "properties" or any(p in ("", ".", "..") for p in parts):
        raise HTTPException(400, "Invalid image key")
    if parts[1] == DRAFTS:
        if len(parts) < 5 or not _is_id(parts[2]):
            raise HTTPException(400, "Invalid image key")
        if int(parts[2]) != user.id and not is_admin(user):
            raise HTTPException(403, "Forbidden")
        return parts[3]
    if len(parts) < 3 or not _is_id(parts[1]):
        raise HTTPException(400, "Invalid image key")
    prop = db.get(Property, int(parts[1]))
    ensure_owner_or_admin(user, prop.user_id if prop else None)
    return parts[1]


@router.post("/api/upload/images", status_code=201)
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    property_id: str = Form(..., min_length=1, max_length=64, pattern=PROPERTY_ID_PATTERN),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    storage: R2Storage = Depends(get_storage),
):
    enforce_rate_limit(request, "upload", *UPLOAD_LIMIT)
    folder = _storage_folder(db, user, property_id)

    content = await file.read()
    check = validate_image(content, file.filename or "")
    if not check["valid"]:
        raise HTTPException(400, check["reason"])

    result = await storage.upload_image(content, file.filename or "image", folder, user.id)
    record_audit(
        db, "Image uploaded", user_id=user.id, resource_type="property_image",
        resource_id=property_id, new_values={"key": result["key"], "size": check["size"]},
        request=request,
    )
    return result


@router.delete("/api/upload/images")
async def delete_image(
    payload: ImageDeleteRequest,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    storage: R2Storage = Depends(get_storage),
):
    resource_id = _check_delete_access(db, user, payload.key)
    await storage.delete_image(payload.key)
    record_audit(
        db, "Image deleted", user_id=user.id, resource_type="property_image",
        resource_id=resource_id, old_values={"key": payload.key}, request=request,
    )
    return {"ok": True}


@router.post("/api/upload/presigned-url")
async def presigned_url(
    payload: PresignedUrlRequest,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    storage: R2Storage = Depends(get_storage),
):
    enforce_rate_limit(request, "upload", *UPLOAD_LIMIT)
    folder = _storage_folder(db, user, payload.property_id)
    content_type = "image/jpeg" if payload.file_type == "image/jpg" else payload.file_type
    result = await storage.signed_upload_url(folder, user.id, payload.file_name, content_type)
    return {**result, "expires_in": 3600}
