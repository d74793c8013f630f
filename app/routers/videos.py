"""
Lesson videos: teachers upload and delete, everyone signed in lists and plays.
Playback goes through the PlaybackGateway: students are metered by the entitlement
evaluator, owners and admins are not. Clients only ever receive short-lived signed URLs.
"""
import logging
from functools import lru_cache
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.auth import get_current_user, get_current_user_optional, get_current_user_teacher
from app.config import get_settings
from app.database import get_db
from app.models.user import User, UserRole
from app.models.video import Video, VideoCategory
from app.repositories.video_views import view_counts_for_user
from app.schemas.video import VideoResponse, PlaybackGrantResponse, PlaybackDenialResponse, SignedUrlResponse
from app.services.entitlement import DenyReason, EntitlementEvaluator
from app.services.playback import Denial, PlaybackGateway, bypasses_quota
from app.services.storage import ObjectStorage, StorageError, get_storage, normalize_object_key
from app.services.video_upload import save_video_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videos", tags=["videos"])

DENIAL_STATUS = {
    DenyReason.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    DenyReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenyReason.VIEW_LIMIT_REACHED: status.HTTP_403_FORBIDDEN,
    DenyReason.INTERNAL_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


# ---------- Dependencies ----------


@lru_cache
def get_entitlement_evaluator() -> EntitlementEvaluator:
    return EntitlementEvaluator()


def get_object_storage() -> ObjectStorage:
    return get_storage()


def get_playback_gateway(
    evaluator: EntitlementEvaluator = Depends(get_entitlement_evaluator),
    storage: ObjectStorage = Depends(get_object_storage),
) -> PlaybackGateway:
    settings = get_settings()
    return PlaybackGateway(
        evaluator,
        storage,
        bucket=settings.video_bucket,
        ttl_seconds=settings.signed_url_ttl_seconds,
        timeout_seconds=settings.playback_timeout_seconds,
    )


def _get_video_or_404(db: Session, video_id: str) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.")
    return video


def _denial_response(denial: Denial) -> JSONResponse:
    body = PlaybackDenialResponse(
        reason=denial.reason.value,
        current_count=denial.current_count,
        limit=denial.limit,
    )
    headers = {"WWW-Authenticate": "Bearer"} if denial.reason == DenyReason.UNAUTHENTICATED else None
    return JSONResponse(
        status_code=DENIAL_STATUS[denial.reason],
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


# ---------- List ----------


@router.get("", response_model=list[VideoResponse])
def list_videos(
    category: VideoCategory | None = None,
    teacher_id: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    evaluator: EntitlementEvaluator = Depends(get_entitlement_evaluator),
):
    """List videos (newest first) with the caller's view count and view limit for each."""
    q = db.query(Video).order_by(Video.created_at.desc())
    if category:
        q = q.filter(Video.category == category.value)
    if teacher_id:
        q = q.filter(Video.teacher_id == teacher_id)
    videos = q.all()
    counts = view_counts_for_user(db, user.id, [v.id for v in videos])
    limit = evaluator.limit_for(db, user.id)
    return [
        VideoResponse(
            id=v.id,
            teacher_id=v.teacher_id,
            title=v.title,
            description=v.description,
            category=v.category,
            has_thumbnail=bool(v.thumbnail_path),
            created_at=v.created_at,
            view_count=counts.get(v.id, 0),
            view_limit=None if bypasses_quota(user.role, user.id, v.teacher_id) else limit,
        )
        for v in videos
    ]


# ---------- Teacher: upload & delete ----------


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    title: str = Form(..., min_length=1, max_length=255),
    category: VideoCategory = Form(...),
    description: str | None = Form(None),
    file: UploadFile = File(...),
    thumbnail: UploadFile | None = File(None),
    teacher: User = Depends(get_current_user_teacher),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Teacher: upload a video with optional thumbnail."""
    try:
        video = await save_video_upload(
            storage, db, teacher.id, title, category.value, file,
            description=description, thumbnail=thumbnail,
        )
    except StorageError as e:
        logger.exception("Video upload failed for teacher %s", teacher.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Storage unavailable.") from e
    db.commit()
    db.refresh(video)
    logger.info("Video %s uploaded by %s", video.id, teacher.id)
    return VideoResponse(
        id=video.id,
        teacher_id=video.teacher_id,
        title=video.title,
        description=video.description,
        category=video.category,
        has_thumbnail=bool(video.thumbnail_path),
        created_at=video.created_at,
    )


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    teacher: User = Depends(get_current_user_teacher),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Owner or admin: delete a video. View records are removed by the database cascade."""
    settings = get_settings()
    video = _get_video_or_404(db, video_id)
    if teacher.role != UserRole.ADMIN.value and video.teacher_id != teacher.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own videos.")
    video_path, thumbnail_path = video.video_path, video.thumbnail_path

    db.query(Video).filter(Video.id == video_id).delete(synchronize_session=False)
    db.commit()

    blobs = [(settings.video_bucket, video_path)]
    if thumbnail_path:
        blobs.append((settings.thumbnail_bucket, thumbnail_path))
    for bucket, path in blobs:
        try:
            await storage.delete(bucket, normalize_object_key(path, bucket))
        except StorageError as e:
            logger.warning("Orphaned object %s/%s after deleting video %s: %s", bucket, path, video_id, e)
    return {"message": "Video deleted successfully."}


# ---------- Playback ----------


@router.post(
    "/{video_id}/playback",
    response_model=PlaybackGrantResponse,
    responses={401: {"model": PlaybackDenialResponse}, 403: {"model": PlaybackDenialResponse},
               404: {"model": PlaybackDenialResponse}, 503: {"model": PlaybackDenialResponse}},
)
async def request_playback(
    video_id: str,
    user: User | None = Depends(get_current_user_optional),
    gateway: PlaybackGateway = Depends(get_playback_gateway),
):
    """
    Consume one view (students without a subscription: 2 per video) and return a signed URL.
    Denials carry reason, current_count and limit so the client can show an upgrade prompt.
    """
    if user is None:
        result = await gateway.request_playback(None, video_id, None)
    else:
        result = await gateway.request_playback(user.id, video_id, user.role)
    if isinstance(result, Denial):
        return _denial_response(result)
    return PlaybackGrantResponse(
        url=result.url,
        expires_at=result.expires_at,
        view_count=result.view_count,
        limit=result.limit,
    )


@router.get("/{video_id}/thumbnail-url", response_model=SignedUrlResponse)
async def get_thumbnail_url(
    video_id: str,
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Signed URL for the video's thumbnail. Thumbnails are not metered."""
    settings = get_settings()
    video = _get_video_or_404(db, video_id)
    if not video.thumbnail_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video has no thumbnail.")
    key = normalize_object_key(video.thumbnail_path, settings.thumbnail_bucket)
    try:
        signed = await storage.create_signed_url(settings.thumbnail_bucket, key, settings.signed_url_ttl_seconds)
    except StorageError as e:
        logger.warning("Thumbnail URL unavailable for video %s: %s", video_id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Thumbnail unavailable.") from e
    return SignedUrlResponse(url=signed.url, expires_at=signed.expires_at)
