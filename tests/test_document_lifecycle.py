"""Tests for the dual-store document lifecycle: upload, delete, wipe, reset."""

from __future__ import annotations

import io

import pytest

from course_backend.document_lifecycle import DocumentLifecycleCoordinator
from errors import DocumentValidationError, IndexDeletionFailure, NotFoundError
from models.document import DocumentUpload
from services.vector_index import InMemoryVectorIndex
from tests.conftest import COURSE

DOCS = "course-documents"


class FlakyVectorIndex(InMemoryVectorIndex):
    """In-memory index whose delete strategies can be made to fail."""

    def __init__(self, fail_ids: bool = False, fail_filter: bool = False, fail_count: bool = False) -> None:
        super().__init__()
        self.fail_ids = fail_ids
        self.fail_filter = fail_filter
        self.fail_count = fail_count

    async def delete_by_ids(self, ids):
        if self.fail_ids:
            raise RuntimeError("batch delete rejected: payload too large")
        await super().delete_by_ids(ids)

    async def delete_by_filter(self, metadata_filter):
        if self.fail_filter:
            raise RuntimeError("filter delete timed out")
        return await super().delete_by_filter(metadata_filter)

    async def count(self):
        if self.fail_count:
            raise RuntimeError("count unavailable")
        return await super().count()


def _coordinator(store, index, embedder, **kwargs) -> DocumentLifecycleCoordinator:
    kwargs.setdefault("chunk_size", 100)
    kwargs.setdefault("chunk_overlap", 20)
    return DocumentLifecycleCoordinator(store, index, embedder, documents_collection=DOCS, **kwargs)


def _text_upload(text: str = "Newton's laws. " * 20, name: str = "Lecture 1", course: str = COURSE) -> DocumentUpload:
    return DocumentUpload(
        name=name,
        course_name=course,
        topic_or_week_title="Week 1",
        item_title="Forces",
        text=text,
    )


class TestUpload:
    @pytest.mark.asyncio
    async def test_text_upload_indexes_chunks(self, store, index, fake_embedder):
        record = await _coordinator(store, index, fake_embedder).upload(_text_upload())

        assert record.uploaded is True
        assert record.source_type == "text"
        assert record.chunks_generated == len(record.vector_refs) > 1
        assert record.vector_ref == record.vector_refs[0]
        assert index.ids() == set(record.vector_refs)

        points = await index.query_by_metadata({"id": record.id})
        assert len(points) == record.chunks_generated
        payload = points[0].payload
        assert payload["courseName"] == COURSE
        assert payload["topicOrWeekTitle"] == "Week 1"
        assert payload["itemTitle"] == "Forces"
        assert payload["sourceType"] == "text"
        assert "uploadedAt" in payload

        stored = await store.find_one(DOCS, {"id": record.id})
        assert stored["uploaded"] is True
        assert stored["chunksGenerated"] == record.chunks_generated

    @pytest.mark.asyncio
    async def test_zero_chunks_leaves_uploaded_false(self, store, index, fake_embedder):
        record = await _coordinator(store, index, fake_embedder).upload(_text_upload(text="   "))
        assert record.uploaded is False
        assert record.vector_ref is None
        assert record.chunks_generated == 0
        assert fake_embedder.calls == []
        assert (await store.find_one(DOCS, {"id": record.id}))["uploaded"] is False

    @pytest.mark.asyncio
    async def test_file_upload(self, store, index, fake_embedder):
        upload = DocumentUpload(
            name="Syllabus",
            course_name=COURSE,
            topic_or_week_title="Week 0",
            item_title="Overview",
            file_name="syllabus.md",
            file_bytes=b"# Syllabus\n\nGrading is 40% labs.",
        )
        record = await _coordinator(store, index, fake_embedder).upload(upload)
        assert record.source_type == "file"
        assert record.file_name == "syllabus.md"
        assert record.chunks_generated == 1
        assert fake_embedder.calls == [["# Syllabus\n\nGrading is 40% labs."]]

    @pytest.mark.asyncio
    async def test_html_upload_strips_markup(self, store, index, fake_embedder):
        upload = DocumentUpload(
            name="Notes",
            course_name=COURSE,
            topic_or_week_title="Week 2",
            item_title="Energy",
            file_name="notes.html",
            file_bytes=b"<html><body><p>Kinetic energy</p></body></html>",
        )
        await _coordinator(store, index, fake_embedder).upload(upload)
        assert fake_embedder.calls == [["Kinetic energy"]]

    @pytest.mark.asyncio
    async def test_docx_upload(self, store, index, fake_embedder):
        from docx import Document

        buf = io.BytesIO()
        doc = Document()
        doc.add_paragraph("Moment of inertia")
        doc.save(buf)

        upload = DocumentUpload(
            name="Handout",
            course_name=COURSE,
            topic_or_week_title="Week 3",
            item_title="Rotation",
            file_name="handout.docx",
            file_bytes=buf.getvalue(),
        )
        record = await _coordinator(store, index, fake_embedder).upload(upload)
        assert record.uploaded
        assert fake_embedder.calls == [["Moment of inertia"]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,file_bytes", [("hello", b"hello"), (None, None)])
    async def test_exactly_one_source(self, store, index, fake_embedder, text, file_bytes):
        upload = _text_upload().model_copy(update={"text": text, "file_bytes": file_bytes, "file_name": "a.txt"})
        with pytest.raises(DocumentValidationError):
            await _coordinator(store, index, fake_embedder).upload(upload)
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, store, index, fake_embedder):
        upload = _text_upload().model_copy(update={"text": None, "file_bytes": b"x", "file_name": "slides.pptx"})
        with pytest.raises(DocumentValidationError, match="pptx"):
            await _coordinator(store, index, fake_embedder).upload(upload)

    @pytest.mark.asyncio
    async def test_size_limit(self, store, index, fake_embedder):
        upload = _text_upload().model_copy(update={"text": None, "file_bytes": b"x" * 11, "file_name": "a.txt"})
        with pytest.raises(DocumentValidationError, match="limit"):
            await _coordinator(store, index, fake_embedder, max_upload_bytes=10).upload(upload)

    @pytest.mark.asyncio
    async def test_record_insert_failure_removes_vectors(self, index, fake_embedder):
        from services.metadata_store import InMemoryMetadataStore

        class BrokenStore(InMemoryMetadataStore):
            async def insert_one(self, collection, document):
                raise ConnectionError("mongo down")

        with pytest.raises(ConnectionError):
            await _coordinator(BrokenStore(), index, fake_embedder).upload(_text_upload())
        assert await index.count() == 0


class TestDeleteDocument:
    @pytest.mark.asyncio
    async def test_removes_vectors_then_record(self, store, index, fake_embedder):
        coordinator = _coordinator(store, index, fake_embedder)
        keep = await coordinator.upload(_text_upload(name="Keep"))
        gone = await coordinator.upload(_text_upload(name="Gone"))

        await coordinator.delete_document(COURSE, gone.id)

        assert index.ids() == set(keep.vector_refs)
        assert await store.find_one(DOCS, {"id": gone.id}) is None
        assert await store.find_one(DOCS, {"id": keep.id}) is not None

    @pytest.mark.asyncio
    async def test_unknown_document(self, store, index, fake_embedder):
        with pytest.raises(NotFoundError):
            await _coordinator(store, index, fake_embedder).delete_document(COURSE, "nope")

    @pytest.mark.asyncio
    async def test_record_without_vectors(self, store, index, fake_embedder):
        coordinator = _coordinator(store, index, fake_embedder)
        record = await coordinator.upload(_text_upload(text=""))
        with pytest.raises(NotFoundError, match="vector reference"):
            await coordinator.delete_document(COURSE, record.id)
        assert await store.find_one(DOCS, {"id": record.id}) is not None

    @pytest.mark.asyncio
    async def test_index_failure_keeps_record(self, store, fake_embedder):
        index = FlakyVectorIndex()
        coordinator = _coordinator(store, index, fake_embedder)
        record = await coordinator.upload(_text_upload())
        index.fail_ids = True
        with pytest.raises(RuntimeError):
            await coordinator.delete_document(COURSE, record.id)
        assert await store.find_one(DOCS, {"id": record.id}) is not None


async def _five_documents(coordinator) -> list:
    # short texts: one chunk, one vector ref each
    return [
        await coordinator.upload(_text_upload(text=f"Topic {i} notes", name=f"Doc {i}"))
        for i in range(5)
    ]


class TestWipeCourse:
    @pytest.mark.asyncio
    async def test_batch_delete(self, store, fake_embedder):
        index = FlakyVectorIndex()
        coordinator = _coordinator(store, index, fake_embedder)
        await _five_documents(coordinator)
        other = await coordinator.upload(_text_upload(text="Other course", course="MECH 220"))

        result = await coordinator.wipe_course(COURSE)

        assert result.deleted_count == 5
        assert result.errors == []
        assert result.vectors_deleted == 5
        assert result.strategy == "by_ids"
        assert result.metadata_cleared == 5
        assert index.ids() == set(other.vector_refs)
        assert await coordinator.list_documents("MECH 220") != []

    @pytest.mark.asyncio
    async def test_falls_back_to_filter(self, store, fake_embedder):
        index = FlakyVectorIndex(fail_ids=True)
        coordinator = _coordinator(store, index, fake_embedder)
        await _five_documents(coordinator)

        result = await coordinator.wipe_course(COURSE)

        assert result.deleted_count == 5
        assert len(result.errors) == 1
        assert "batch delete rejected" in result.errors[0]
        assert result.strategy == "by_filter"
        assert await coordinator.list_documents(COURSE) == []
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_counts_documents_not_chunks(self, store, fake_embedder):
        index = FlakyVectorIndex(fail_ids=True)
        coordinator = _coordinator(store, index, fake_embedder)
        records = [
            await coordinator.upload(_text_upload(text="Conservation of momentum. " * 20, name=f"Doc {i}"))
            for i in range(5)
        ]
        chunks = sum(len(r.vector_refs) for r in records)
        assert chunks > 5

        result = await coordinator.wipe_course(COURSE)

        assert result.deleted_count == 5
        assert result.vectors_deleted == chunks
        assert result.strategy == "by_filter"
        assert result.metadata_cleared == 5
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_both_strategies_fail(self, store, fake_embedder):
        index = FlakyVectorIndex(fail_ids=True, fail_filter=True)
        coordinator = _coordinator(store, index, fake_embedder)
        await _five_documents(coordinator)

        with pytest.raises(IndexDeletionFailure) as exc_info:
            await coordinator.wipe_course(COURSE)

        assert exc_info.value.attempted == 5
        assert len(exc_info.value.errors) == 2
        assert len(await coordinator.list_documents(COURSE)) == 5
        assert await index.count() == 5

    @pytest.mark.asyncio
    async def test_empty_course(self, store, index, fake_embedder):
        result = await _coordinator(store, index, fake_embedder).wipe_course(COURSE)
        assert result.deleted_count == 0
        assert result.strategy == "none"


class TestNuclearReset:
    @pytest.mark.asyncio
    async def test_drops_vectors_keeps_metadata(self, store, index, fake_embedder):
        coordinator = _coordinator(store, index, fake_embedder)
        await _five_documents(coordinator)

        result = await coordinator.nuclear_reset()

        assert result.deleted_count == 5
        assert result.strategy == "drop_collection"
        assert await index.count() == 0
        assert len(await coordinator.list_documents(COURSE)) == 5

    @pytest.mark.asyncio
    async def test_count_failure_still_resets(self, store, fake_embedder):
        index = FlakyVectorIndex(fail_count=True)
        coordinator = _coordinator(store, index, fake_embedder)
        await _five_documents(coordinator)

        result = await coordinator.nuclear_reset()
        assert result.deleted_count == 0
        assert index.ids() == set()
