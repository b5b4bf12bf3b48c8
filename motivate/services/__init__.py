"""Convenience exports for service layer."""
from .auth_service import (
    AuthOutcome,
    continue_with_email,
    get_admin_policy,
    get_current_identity,
    request_password_reset,
    require_admin,
    sign_out,
)
from .background_video import (
    BackgroundConfigurationError,
    BackgroundMode,
    BackgroundVideoSelector,
    discover_background_sources,
)
from .feed_controller import FeedController
from .maintenance import FixSummary, fix_existing_videos
from .preferences import PreferenceStore, get_preference_store
from .relation_service import list_relations, relation_exists, set_relation_state, subscribe_saved
from .session_guard import AdminPolicy, AdminRequiredError, GuardState, SessionGuard
from .upload_pipeline import UploadItem, UploadPipeline, UploadSummary, UploadTask
from .video_card import DeletionResult, PlaybackRejected, PlaybackState, RelationToggle, VideoCard

__all__ = [
    "AuthOutcome",
    "continue_with_email",
    "request_password_reset",
    "sign_out",
    "get_admin_policy",
    "get_current_identity",
    "require_admin",
    "BackgroundConfigurationError",
    "BackgroundMode",
    "BackgroundVideoSelector",
    "discover_background_sources",
    "FeedController",
    "FixSummary",
    "fix_existing_videos",
    "PreferenceStore",
    "get_preference_store",
    "list_relations",
    "relation_exists",
    "set_relation_state",
    "subscribe_saved",
    "AdminPolicy",
    "AdminRequiredError",
    "GuardState",
    "SessionGuard",
    "UploadItem",
    "UploadPipeline",
    "UploadSummary",
    "UploadTask",
    "DeletionResult",
    "PlaybackRejected",
    "PlaybackState",
    "RelationToggle",
    "VideoCard",
]
