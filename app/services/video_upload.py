"""Shared helpers for teacher video upload (used by the videos router)."""
import uuid
from pathlib import Path
from fastapi import UploadFile, HTTPException, status
from sqlalchemy.orm import Session
from app.config import get_settings
from app.models.video import Video
from app.services.storage import ObjectStorage

VIDEO_CONTENT_TYPES = {"video/mp4", "video/webm", "video/ogg", "video/quicktime"}
VIDEO_EXTENSIONS = (".mp4", ".webm", ".ogg", ".mov")
IMAGE_CONTENT_TYPES = {"image/png", "image/jpeg", "image/webp"}


def _content_type(file: UploadFile) -> str:
    return (file.content_type or "").split(";")[0].strip().lower()


def _extension(filename: str | None, default: str) -> str:
    ext = Path(filename or "").suffix.lower() or default
    return default if len(ext) > 10 else ext


def validate_video_file(file: UploadFile) -> str:
    """Return normalized content type, or raise 400 if the upload is not a video."""
    ct = _content_type(file)
    if ct not in VIDEO_CONTENT_TYPES and not (file.filename or "").lower().endswith(VIDEO_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be a video (e.g. video/mp4). Allowed: mp4, webm, ogg, mov.",
        )
    return ct or "video/mp4"


def validate_thumbnail_file(file: UploadFile) -> str:
    ct = _content_type(file)
    if ct not in IMAGE_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Thumbnail must be an image (png, jpeg, webp).",
        )
    return ct


async def save_video_upload(
    storage: ObjectStorage,
    db: Session,
    teacher_id: str,
    title: str,
    category: str,
    file: UploadFile,
    description: str | None = None,
    thumbnail: UploadFile | None = None,
) -> Video:
    """
    Store the media (and optional thumbnail) under <teacher_id>/<video_id><ext> and add a Video row.
    Object keys are stored bare (no bucket prefix). Caller must db.commit().
    """
    settings = get_settings()
    ct = validate_video_file(file)
    thumb_ct = validate_thumbnail_file(thumbnail) if thumbnail and thumbnail.filename else None

    video_id = str(uuid.uuid4())
    video_key = f"{teacher_id}/{video_id}{_extension(file.filename, '.mp4')}"
    await storage.save(settings.video_bucket, video_key, file.file, ct)

    thumbnail_key = None
    if thumb_ct:
        thumbnail_key = f"{teacher_id}/{video_id}{_extension(thumbnail.filename, '.png')}"
        await storage.save(settings.thumbnail_bucket, thumbnail_key, thumbnail.file, thumb_ct)

    video = Video(
        id=video_id,
        teacher_id=teacher_id,
        title=title.strip(),
        description=(description or "").strip() or None,
        category=category,
        video_path=video_key,
        thumbnail_path=thumbnail_key,
        content_type=ct,
    )
    db.add(video)
    return video
