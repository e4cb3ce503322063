"""Process-wide wiring of stores and services.

Every service receives the same :class:`CollectionNameCache` so a course's
collection names are resolved once per process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from config.settings import get_settings
from course_backend.document_lifecycle import DocumentLifecycleCoordinator
from course_backend.embeddings import Embedder
from services import metadata_store, vector_index
from services.collection_names import CollectionNameCache, course_record_resolver
from services.flag_indexes import ConsistencyIndexManager
from services.flag_service import FlagService
from services.metadata_store import MetadataStore
from services.struggle_analyzer import StruggleAnalyzer
from services.struggle_ledger import StruggleTopicLedger
from services.user_directory import UserDirectory
from services.vector_index import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: MetadataStore
    index: VectorIndex
    names: CollectionNameCache
    flags: FlagService
    indexes: ConsistencyIndexManager
    users: UserDirectory
    ledger: StruggleTopicLedger
    analyzer: StruggleAnalyzer
    documents: DocumentLifecycleCoordinator


def build_services(store: MetadataStore, index: VectorIndex, embedder=None) -> Services:
    settings = get_settings()
    names = CollectionNameCache(course_record_resolver(store, settings.course_list_collection))
    users = UserDirectory(store, names)
    indexes = ConsistencyIndexManager(store, names)
    ledger = StruggleTopicLedger(store, names, users, indexes)
    return Services(
        store=store,
        index=index,
        names=names,
        flags=FlagService(store, names),
        indexes=indexes,
        users=users,
        ledger=ledger,
        analyzer=StruggleAnalyzer(ledger),
        documents=DocumentLifecycleCoordinator(
            store,
            index,
            embedder or Embedder.from_settings(),
            documents_collection=settings.documents_collection,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_upload_bytes=settings.max_upload_bytes,
        ),
    )


_services: Services | None = None


def get_services() -> Services:
    """Get the singleton service bundle, built on the configured stores."""
    global _services
    if _services is None:
        _services = build_services(
            metadata_store.get_metadata_store(), vector_index.get_vector_index(),
        )
        logger.info("Services initialized")
    return _services


def set_services(services: Services | None) -> None:
    """Replace the singleton (``None`` rebuilds on next access)."""
    global _services
    _services = services
