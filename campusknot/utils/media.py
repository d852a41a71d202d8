"""Local media storage for profile photos and chat attachments."""

import io
import shutil
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from campusknot.config import get_settings
from campusknot.utils.errors import ValidationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

MEDIA_URL_PREFIX = "/uploads"

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
AUDIO_EXTENSIONS = {"webm", "mp4", "ogg", "wav", "mpeg", "mp3"}


def get_storage_path() -> Path:
    """
    Get the absolute path to the storage directory, creating it if needed.

    Returns:
        Path: The absolute path to the media storage directory.
    """
    path = Path(get_settings().STORAGE_PATH)
    if not path.is_absolute():
        path = Path.cwd() / path
    path.mkdir(parents=True, exist_ok=True)
    return path


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _check_size(file_content: bytes) -> None:
    max_bytes = get_settings().MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if not file_content:
        raise ValidationError("Uploaded file is empty")
    if len(file_content) > max_bytes:
        raise ValidationError(f"File too large. Maximum size: {get_settings().MAX_UPLOAD_SIZE_MB}MB")


def is_allowed_image(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Images must have an allowed extension and a matching image content type."""
    subtype = (content_type or "").split("/")[-1].lower()
    return _extension(filename) in IMAGE_EXTENSIONS and subtype in IMAGE_EXTENSIONS


def is_allowed_audio(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Voice notes are accepted by extension or by any audio content type."""
    return _extension(filename) in AUDIO_EXTENSIONS or (content_type or "").lower().startswith("audio/")


def save_image(file_content: bytes, user_id: int) -> str:
    """
    Store an uploaded image as a compressed JPEG.

    Args:
        file_content (bytes): The raw upload.
        user_id (int): Owner of the file; files are grouped per user.

    Returns:
        str: Public reference, e.g. "/uploads/12/<uuid>.jpg".

    Raises:
        ValidationError: If the upload is empty, too large or not a readable image.
    """
    _check_size(file_content)
    try:
        image: Image.Image = Image.open(io.BytesIO(file_content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Invalid image file") from e

    # JPEG has no alpha channel or palette
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    user_dir = get_storage_path() / str(user_id)
    user_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4()}.jpg"
    image.save(user_dir / filename, "JPEG", quality=70, optimize=True)

    logger.info("Image saved", user_id=user_id, filename=filename)
    return f"{MEDIA_URL_PREFIX}/{user_id}/{filename}"


def save_audio(file_content: bytes, user_id: int, filename: Optional[str] = None) -> str:
    """
    Store an uploaded voice note unchanged.

    Returns:
        str: Public reference, e.g. "/uploads/12/voice-<uuid>.webm".
    """
    _check_size(file_content)
    ext = _extension(filename) if _extension(filename) in AUDIO_EXTENSIONS else "webm"

    user_dir = get_storage_path() / str(user_id)
    user_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"voice-{uuid.uuid4()}.{ext}"
    (user_dir / stored_name).write_bytes(file_content)

    logger.info("Voice note saved", user_id=user_id, filename=stored_name)
    return f"{MEDIA_URL_PREFIX}/{user_id}/{stored_name}"


def delete_user_media(user_id: int) -> bool:
    """
    Remove every stored file belonging to a user.

    Returns:
        bool: True if a media directory existed and was removed.
    """
    user_dir = get_storage_path() / str(user_id)
    if not user_dir.exists():
        return False
    shutil.rmtree(user_dir)
    logger.info("User media deleted", user_id=user_id)
    return True
