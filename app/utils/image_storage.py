import logging
import os
import secrets
import time
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
IMAGE_SIZES = {
    "car": (800, 600),
    "driver": (400, 400),
}
JPEG_QUALITY = 85
URL_PREFIX = "/uploads/"


class ImageValidationError(ValueError):
    pass


def upload_root() -> str:
    return os.path.abspath(settings.UPLOAD_DIR)


def validate_upload(content: bytes, content_type: Optional[str], image_type: str) -> None:
    if image_type not in IMAGE_SIZES:
        raise ImageValidationError(f"Invalid image type. Use one of: {', '.join(IMAGE_SIZES)}")
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ImageValidationError("Only JPEG, PNG and WebP images are allowed")
    if not content:
        raise ImageValidationError("Uploaded file is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ImageValidationError(
            f"File is too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
        )


def resize_to_jpeg(content: bytes, size: Tuple[int, int]) -> bytes:
    """Fit the image inside ``size`` without upscaling and re-encode as JPEG."""
    try:
        image = Image.open(BytesIO(content))
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageValidationError(f"Could not read image: {e}")
    if image.mode != "RGB":
        image = image.convert("RGB")
    image.thumbnail(size, Image.LANCZOS)
    output = BytesIO()
    image.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    return output.getvalue()


def save_image(content: bytes, content_type: Optional[str], image_type: str) -> str:
    """Validate, resize and store an image. Returns its public /uploads/ path."""
    validate_upload(content, content_type, image_type)
    data = resize_to_jpeg(content, IMAGE_SIZES[image_type])

    directory = os.path.join(upload_root(), image_type)
    os.makedirs(directory, exist_ok=True)
    filename = f"{image_type}_{int(time.time() * 1000)}_{secrets.token_hex(4)}.jpg"
    with open(os.path.join(directory, filename), "wb") as f:
        f.write(data)
    logger.info(f"Saved {image_type} image {filename} ({len(data)} bytes)")
    return f"{URL_PREFIX}{image_type}/{filename}"


def resolve_public_path(url_path: str) -> str:
    """
    Map a public /uploads/... path to a file under the upload root.
    Raises ImageValidationError for anything outside it.
    """
    if not url_path or ".." in url_path or not url_path.startswith(URL_PREFIX):
        raise ImageValidationError("Invalid image path")
    relative = url_path[len(URL_PREFIX):]
    root = upload_root()
    full_path = os.path.abspath(os.path.join(root, relative))
    if os.path.commonpath([root, full_path]) != root:
        raise ImageValidationError("Invalid image path")
    return full_path


CONTENT_TYPES_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def guess_content_type(path: str) -> str:
    extension = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES_BY_EXTENSION.get(extension, "application/octet-stream")


def delete_image(url_path: Optional[str]) -> bool:
    """Remove a stored image. Missing files and foreign paths are ignored."""
    if not url_path:
        return False
    try:
        full_path = resolve_public_path(url_path)
    except ImageValidationError:
        logger.warning(f"Refusing to delete image outside upload dir: {url_path}")
        return False
    if not os.path.isfile(full_path):
        return False
    try:
        os.remove(full_path)
        logger.info(f"Deleted image {url_path}")
        return True
    except OSError as e:
        logger.error(f"Failed to delete image {url_path}: {e}")
        return False
