from app.models.user import User, UserRole
from app.models.video import Video, VideoCategory
from app.models.video_view import VideoView
from app.models.subscription import Subscription
from app.models.banned_user import BannedUser
from app.models.assistant_usage import AssistantUsage
from app.models.message import Message
from app.models.teacher_invite_code import TeacherInviteCode

__all__ = [
    "User", "UserRole", "Video", "VideoCategory", "VideoView", "Subscription", "BannedUser",
    "AssistantUsage", "Message", "TeacherInviteCode",
]
