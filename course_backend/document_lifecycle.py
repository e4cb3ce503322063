"""Document lifecycle across the metadata store and the vector index.

The two stores share no transaction.  Every operation here is an ordered
sequence of steps where a later step runs only if the earlier ones held,
and the metadata store is always written last on deletion.  That keeps
one invariant: a metadata record never claims vectors are gone when
they are still in the index.

Bulk wipe is a compensation chain::

    collect refs → delete by ids ─ok─→ clear metadata
                         │fail
                         └→ delete by courseName filter ─ok─→ clear metadata
                                         │fail
                                         └→ IndexDeletionFailure (metadata untouched)
"""

from __future__ import annotations

import logging
from typing import Protocol

from errors import DocumentValidationError, IndexDeletionFailure, NotFoundError
from models.base import utc_now
from models.document import DocumentRecord, DocumentUpload, SourceType, VectorPoint, WipeResult
from services.id_generator import document_id
from services.metadata_store import MetadataStore
from services.vector_index import VectorIndex

from course_backend.chunking import chunk_text
from course_backend.text_extraction import SUPPORTED_EXTENSIONS, extract_text, file_extension

logger = logging.getLogger(__name__)


class TextEmbedder(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


def _refs(record: DocumentRecord) -> list[str]:
    if record.vector_refs:
        return list(record.vector_refs)
    return [record.vector_ref] if record.vector_ref else []


class DocumentLifecycleCoordinator:
    def __init__(
        self,
        store: MetadataStore,
        index: VectorIndex,
        embedder: TextEmbedder,
        documents_collection: str = "course-documents",
        chunk_size: int = 1024,
        chunk_overlap: int = 200,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self._store = store
        self._index = index
        self._embedder = embedder
        self._collection = documents_collection
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._max_upload_bytes = max_upload_bytes

    # ── Upload ───────────────────────────────────────────────

    def _validate(self, upload: DocumentUpload) -> SourceType:
        has_text = upload.text is not None
        has_file = upload.file_bytes is not None
        if has_text == has_file:
            raise DocumentValidationError("Provide exactly one of text or file")

        if has_text:
            return SourceType.TEXT

        if not upload.file_name:
            raise DocumentValidationError("File uploads require a file name")
        ext = file_extension(upload.file_name)
        if ext not in SUPPORTED_EXTENSIONS:
            raise DocumentValidationError(
                f"Unsupported file type '{ext or upload.file_name}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )
        if len(upload.file_bytes) > self._max_upload_bytes:
            raise DocumentValidationError(
                f"File exceeds the {self._max_upload_bytes // (1024 * 1024)}MB upload limit"
            )
        return SourceType.FILE

    async def upload(self, upload: DocumentUpload) -> DocumentRecord:
        source_type = self._validate(upload)
        if source_type is SourceType.TEXT:
            text = upload.text
        else:
            try:
                text = extract_text(upload.file_name, upload.file_bytes)
            except Exception as exc:
                raise DocumentValidationError(f"Could not read '{upload.file_name}': {exc}") from exc

        date = upload.date or utc_now()
        doc_id = document_id(
            upload.name, upload.item_title, upload.topic_or_week_title, upload.course_name, date,
        )
        chunks = chunk_text(text, self._chunk_size, self._chunk_overlap)

        vector_ids: list[str] = []
        if chunks:
            vectors = await self._embedder.embed(chunks)
            uploaded_at = utc_now().isoformat()
            points = [
                VectorPoint(
                    id=f"{doc_id}-{i:04d}",
                    vector=vector,
                    text=chunk,
                    payload={
                        "id": doc_id,
                        "date": date.isoformat(),
                        "name": upload.name,
                        "courseName": upload.course_name,
                        "topicOrWeekTitle": upload.topic_or_week_title,
                        "itemTitle": upload.item_title,
                        "sourceType": source_type.value,
                        "uploadedAt": uploaded_at,
                        "chunkIndex": i,
                    },
                )
                for i, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]
            vector_ids = await self._index.upsert(points)

        record = DocumentRecord(
            id=doc_id,
            name=upload.name,
            course_name=upload.course_name,
            topic_or_week_title=upload.topic_or_week_title,
            item_title=upload.item_title,
            source_type=source_type,
            file_name=upload.file_name,
            date=date,
            uploaded=bool(vector_ids),
            vector_ref=vector_ids[0] if vector_ids else None,
            vector_refs=vector_ids,
            chunks_generated=len(vector_ids),
            uploaded_by=upload.uploaded_by,
        )

        try:
            await self._store.insert_one(self._collection, record.to_document())
        except Exception:
            # Vectors without a record would be unreachable by delete_document
            if vector_ids:
                logger.warning("Record insert failed for %s, removing %d vectors", doc_id, len(vector_ids))
                await self._index.delete_by_ids(vector_ids)
            raise

        if record.uploaded:
            logger.info(
                "Uploaded '%s' to course '%s': %d chunks (ref=%s)",
                record.name, record.course_name, record.chunks_generated, record.vector_ref,
            )
        else:
            logger.warning("'%s' produced no chunks; record stored with uploaded=false", record.name)
        return record

    # ── Reads ────────────────────────────────────────────────

    async def list_documents(self, course_name: str) -> list[DocumentRecord]:
        docs = await self._store.find(self._collection, {"courseName": course_name}, sort=[("date", -1)])
        return [DocumentRecord.model_validate(d) for d in docs]

    async def get_document(self, course_name: str, doc_id: str) -> DocumentRecord:
        doc = await self._store.find_one(self._collection, {"id": doc_id, "courseName": course_name})
        if doc is None:
            raise NotFoundError("document", doc_id)
        return DocumentRecord.model_validate(doc)

    # ── Deletion ─────────────────────────────────────────────

    async def delete_document(self, course_name: str, doc_id: str) -> DocumentRecord:
        record = await self.get_document(course_name, doc_id)
        if not record.vector_ref:
            raise NotFoundError("vector reference", doc_id, "document has no indexed vectors")

        refs = _refs(record)
        await self._index.delete_by_ids(refs)
        await self._store.delete_one(self._collection, {"id": doc_id, "courseName": course_name})
        logger.info("Deleted document %s (%d vectors) from course '%s'", doc_id, len(refs), course_name)
        return record

    async def wipe_course(self, course_name: str) -> WipeResult:
        records = await self.list_documents(course_name)
        if not records:
            return WipeResult()
        indexed = [record for record in records if _refs(record)]
        refs = [ref for record in indexed for ref in _refs(record)]

        errors: list[str] = []
        strategy = "none"
        if refs:
            try:
                await self._index.delete_by_ids(refs)
                strategy = "by_ids"
            except Exception as exc:
                logger.warning("Batch delete of %d vectors failed for '%s': %s", len(refs), course_name, exc)
                errors.append(f"delete_by_ids: {exc}")

            if strategy == "none":
                try:
                    await self._index.delete_by_filter({"courseName": course_name})
                    strategy = "by_filter"
                except Exception as exc:
                    logger.error("Filter delete failed for '%s': %s", course_name, exc)
                    errors.append(f"delete_by_filter: {exc}")
                    raise IndexDeletionFailure(course_name, len(refs), errors) from exc

        cleared = await self._store.delete_many(self._collection, {"courseName": course_name})
        logger.info(
            "Wiped course '%s': %d documents, %d vectors (%s), %d records",
            course_name, len(indexed), len(refs), strategy, cleared,
        )
        return WipeResult(
            deleted_count=len(indexed),
            vectors_deleted=len(refs),
            errors=errors,
            strategy=strategy,
            metadata_cleared=cleared,
        )

    async def nuclear_reset(self) -> WipeResult:
        """Drop and recreate the whole vector collection.  Metadata is not touched."""
        try:
            count = await self._index.count()
        except Exception as exc:
            logger.warning("Could not count vectors before reset: %s", exc)
            count = 0

        await self._index.drop_and_recreate()
        logger.warning("Nuclear reset: dropped vector collection (%d points)", count)
        return WipeResult(deleted_count=count, vectors_deleted=count, strategy="drop_collection")
