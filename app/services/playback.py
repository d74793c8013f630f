"""
Playback gateway: the only way a client gets a playable URL.

    REQUESTED -> EVALUATING -> ALLOWED -> URL_ISSUED
                            -> DENIED

Owners (teacher of the video) and admins skip the view quota. Everyone else goes through
EntitlementEvaluator.try_consume_view. Timeouts and errors deny; nothing is retried here.
A timed-out evaluation may still commit its view in the worker thread; the caller is denied anyway.
The object is looked up before a view is spent, so a missing blob never uses up anyone's allowance.
A signing failure after ALLOWED still costs the view (the evaluator has already committed).
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Union

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.user import UserRole
from app.models.video import Video
from app.services.entitlement import AllowResult, DenyReason, EntitlementEvaluator
from app.services.storage import ObjectStorage, StorageError, normalize_object_key

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL_SECONDS = 3600


class PlaybackState(str, enum.Enum):
    REQUESTED = "REQUESTED"
    EVALUATING = "EVALUATING"
    ALLOWED = "ALLOWED"
    URL_ISSUED = "URL_ISSUED"
    DENIED = "DENIED"


@dataclass(frozen=True)
class PlaybackGrant:
    url: str
    expires_at: datetime
    view_count: int | None = None  # None when the quota was bypassed
    limit: int | None = None
    state: PlaybackState = PlaybackState.URL_ISSUED


@dataclass(frozen=True)
class Denial:
    reason: DenyReason
    current_count: int | None = None
    limit: int | None = None
    state: PlaybackState = PlaybackState.DENIED


PlaybackResult = Union[PlaybackGrant, Denial]


@dataclass(frozen=True)
class _VideoRef:
    teacher_id: str
    video_path: str


def bypasses_quota(role: str | None, user_id: str, teacher_id: str) -> bool:
    """Admins, and teachers on their own videos, are never metered."""
    if role == UserRole.ADMIN.value:
        return True
    return role == UserRole.TEACHER.value and user_id == teacher_id


class PlaybackGateway:
    def __init__(
        self,
        evaluator: EntitlementEvaluator,
        storage: ObjectStorage,
        bucket: str = "videos",
        session_factory: Callable[[], Session] = SessionLocal,
        ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        timeout_seconds: float = 10.0,
    ):
        self.evaluator = evaluator
        self.storage = storage
        self.bucket = bucket
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def _in_thread(func, *args) -> "asyncio.Future":
        """Run blocking DB work in the default executor. Awaiting it can be abandoned on timeout."""
        return asyncio.get_running_loop().run_in_executor(None, func, *args)

    def _load_video(self, video_id: str) -> _VideoRef | None:
        with self._session_factory() as db:
            video = db.get(Video, video_id)
            if video is None:
                return None
            return _VideoRef(teacher_id=video.teacher_id, video_path=video.video_path)

    async def request_playback(self, user_id: str | None, video_id: str, role: str | None) -> PlaybackResult:
        logger.debug("Playback %s: user=%s video=%s", PlaybackState.REQUESTED.value, user_id, video_id)
        if not user_id:
            return self._deny(Denial(DenyReason.UNAUTHENTICATED), user_id, video_id)

        try:
            video = await asyncio.wait_for(self._in_thread(self._load_video, video_id), self.timeout_seconds)
        except Exception:
            logger.exception("Video lookup failed for playback (video=%s)", video_id)
            return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)
        if video is None:
            return self._deny(Denial(DenyReason.NOT_FOUND), user_id, video_id)

        key = normalize_object_key(video.video_path, self.bucket)
        view_count = limit = None
        if not bypasses_quota(role, user_id, video.teacher_id):
            try:
                available = await asyncio.wait_for(self.storage.exists(self.bucket, key), self.timeout_seconds)
            except (StorageError, asyncio.TimeoutError) as e:
                logger.warning("Object lookup failed for video %s: %s", video_id, e)
                return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)
            if not available:
                logger.error("Video %s has no stored object at %s/%s", video_id, self.bucket, key)
                return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)

            logger.debug("Playback %s: user=%s video=%s", PlaybackState.EVALUATING.value, user_id, video_id)
            try:
                decision = await asyncio.wait_for(
                    self._in_thread(self.evaluator.try_consume_view, user_id, video_id),
                    self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("Entitlement check timed out (user=%s video=%s)", user_id, video_id)
                return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)
            except Exception:
                logger.exception("Entitlement check failed (user=%s video=%s)", user_id, video_id)
                return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)
            if not isinstance(decision, AllowResult):
                denial = Denial(decision.reason, current_count=decision.current_count, limit=decision.limit)
                return self._deny(denial, user_id, video_id)
            view_count, limit = decision.view_count, decision.limit

        logger.debug("Playback %s: user=%s video=%s", PlaybackState.ALLOWED.value, user_id, video_id)
        try:
            signed = await asyncio.wait_for(
                self.storage.create_signed_url(self.bucket, key, self.ttl_seconds),
                self.timeout_seconds,
            )
        except (StorageError, asyncio.TimeoutError) as e:
            logger.warning("Signed URL unavailable for video %s: %s", video_id, e)
            return self._deny(Denial(DenyReason.INTERNAL_ERROR), user_id, video_id)

        logger.info("Playback %s: user=%s video=%s", PlaybackState.URL_ISSUED.value, user_id, video_id)
        return PlaybackGrant(url=signed.url, expires_at=signed.expires_at, view_count=view_count, limit=limit)

    @staticmethod
    def _deny(denial: Denial, user_id: str | None, video_id: str) -> Denial:
        logger.info(
            "Playback %s: user=%s video=%s reason=%s",
            PlaybackState.DENIED.value, user_id, video_id, denial.reason.value,
        )
        return denial
