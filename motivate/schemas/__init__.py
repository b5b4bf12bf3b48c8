"""Convenience exports for schema layer."""
from .admin import FixResponse, UploadBatchResponse, UploadTaskResponse
from .auth import AuthResponse, ContinueRequest, IdentityResponse, MessageResponse, ResetRequest
from .background import BackgroundResponse
from .feed import DeleteVideoResponse, FeedResponse, RelationStateResponse, VideoResponse
from .preferences import PreferencesResponse, PreferencesUpdate
from .videos import NewVideoDocument, RelationKind, RelationRecord, VideoEntry, relation_path

__all__ = [
    "BackgroundResponse",
    "AuthResponse",
    "ContinueRequest",
    "IdentityResponse",
    "MessageResponse",
    "ResetRequest",
    "DeleteVideoResponse",
    "FeedResponse",
    "RelationStateResponse",
    "VideoResponse",
    "FixResponse",
    "UploadBatchResponse",
    "UploadTaskResponse",
    "PreferencesResponse",
    "PreferencesUpdate",
    "NewVideoDocument",
    "RelationKind",
    "RelationRecord",
    "VideoEntry",
    "relation_path",
]
