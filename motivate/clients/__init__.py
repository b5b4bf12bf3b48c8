"""Remote store adapters and the factory that picks one from settings."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable

from ..config import Settings, get_settings
from .remote_store import (
    SERVER_TIMESTAMP,
    AuthClient,
    AuthError,
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    Identity,
    InvalidObjectReference,
    ObjectStore,
    ObjectStoreError,
    RemoteStore,
    RemoteStoreError,
    act_as,
    acting_identity,
)

logger = logging.getLogger(__name__)


def id_token_provider(auth: AuthClient) -> Callable[[], str | None]:
    """Token of the identity the current request acts as, else the signed-in client user."""

    def _token() -> str | None:
        identity = acting_identity() or auth.current_identity
        return identity.id_token if identity else None

    return _token


def build_remote_store(settings: Settings | None = None) -> RemoteStore:
    """Assemble auth, documents and objects for the configured backend."""

    resolved = settings or get_settings()

    if resolved.backend == "firebase":
        from .firebase import FirebaseAuthClient, FirebaseConfig, FirestoreDocumentStore, FirebaseStorageObjectStore

        config = FirebaseConfig.from_settings(resolved)
        auth: AuthClient = FirebaseAuthClient(config)

        token = id_token_provider(auth)
        documents: DocumentStore = FirestoreDocumentStore(config, token_provider=token)
        objects: ObjectStore = FirebaseStorageObjectStore(config, token_provider=token)
    else:
        from .memory import create_memory_store

        memory = create_memory_store(resolved)
        auth, documents, objects = memory.auth, memory.documents, memory.objects

    object_backend = resolved.resolved_object_backend
    if object_backend == "spaces":
        from .spaces import SpacesConfig, SpacesObjectStore

        objects = SpacesObjectStore(SpacesConfig.from_settings(resolved))
    elif object_backend != resolved.backend:
        logger.warning(
            "Object backend %s is only available alongside the matching auth backend; using %s",
            object_backend,
            resolved.backend,
        )

    logger.info("Remote store ready (backend=%s, objects=%s)", resolved.backend, type(objects).__name__)
    return RemoteStore(auth=auth, documents=documents, objects=objects)


@lru_cache(maxsize=1)
def get_remote_store() -> RemoteStore:
    """Process-wide store used by the HTTP surface."""

    return build_remote_store()


__all__ = [
    "SERVER_TIMESTAMP",
    "AuthClient",
    "AuthError",
    "DocumentSnapshot",
    "DocumentStore",
    "DocumentStoreError",
    "Identity",
    "InvalidObjectReference",
    "ObjectStore",
    "ObjectStoreError",
    "RemoteStore",
    "RemoteStoreError",
    "act_as",
    "acting_identity",
    "build_remote_store",
    "id_token_provider",
    "get_remote_store",
]
