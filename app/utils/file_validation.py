"""File validation — image type checking for listing uploads.

Uses `filetype` library for magic-byte validation (don't trust the
extension or the client-supplied content type). The extension reported
for a valid image comes from the detected type, never the filename.
"""
import logging

import filetype as ft

log = logging.getLogger("openhaus.file_validation")

# Maximum upload size (10 MB)
MAX_FILE_SIZE = 10 * 1024 * 1024

# Allowed MIME types → stored extension
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def validate_image(content: bytes, filename: str) -> dict:
    """Validate an uploaded image's actual type and size.

    Returns:
        {
            "valid": bool,
            "mime": "image/jpeg" | "image/png" | "image/webp" | None,
            "extension": str | None,
            "reason": str | None,    # Why invalid
            "size": int,
        }
    """
    result = {
        "valid": False,
        "mime": None,
        "extension": None,
        "reason": None,
        "size": len(content),
    }

    if len(content) == 0:
        result["reason"] = "Empty file"
        return result

    if len(content) > MAX_FILE_SIZE:
        result["reason"] = "File too large. Maximum size is 10MB."
        return result

    kind = ft.guess(content)
    if kind is None or kind.mime not in ALLOWED_IMAGE_TYPES:
        detected = kind.mime if kind else "unknown"
        log.info("Rejected upload %s (detected %s)", filename, detected)
        result["reason"] = "Invalid file type. Only JPEG, PNG, and WebP are allowed."
        return result

    result["valid"] = True
    result["mime"] = kind.mime
    result["extension"] = ALLOWED_IMAGE_TYPES[kind.mime]
    return result
