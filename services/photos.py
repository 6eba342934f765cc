"""Student photo upload (Cloudinary). Only the returned URL is stored."""
import io
import logging

import cloudinary
import cloudinary.uploader

from config import settings
from errors import PhotoUploadError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = ("image/jpeg", "image/png", "image/webp")

cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True,
)


def upload_student_photo(content: bytes, content_type: str, registration: str) -> str:
    if content_type not in ALLOWED_TYPES:
        raise PhotoUploadError(f"Unsupported image type: {content_type}")
    if len(content) > settings.PHOTO_MAX_BYTES:
        raise PhotoUploadError(
            f"Image size exceeds {settings.PHOTO_MAX_BYTES // 1024}KB. Please compress the photo."
        )

    try:
        result = cloudinary.uploader.upload(
            io.BytesIO(content),
            folder=settings.CLOUDINARY_FOLDER,
            public_id=f"student_{registration}",
            overwrite=True,
            transformation=[{"width": 800, "height": 800, "crop": "limit", "quality": "auto"}],
        )
    except Exception as e:
        # Cloudinary SDK raises its own Error plus raw HTTP errors
        logger.error("Cloudinary upload failed for %s: %s", registration, e)
        raise PhotoUploadError(f"Photo upload failed: {e}", upstream=True) from e

    url = result.get("secure_url")
    if not url:
        raise PhotoUploadError("Photo upload returned no URL", upstream=True)
    return url
