"""Course materials API — upload, list, delete, wipe.

``IndexDeletionFailure`` from a wipe reaches the client as a 500 carrying
the number of references attempted and the strategy errors.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, UploadFile

from models.document import DocumentUpload, TextUploadRequest
from services.registry import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses/{course_name}/documents", tags=["documents"])
admin_router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("/text", status_code=201)
async def upload_text(course_name: str, req: TextUploadRequest):
    upload = DocumentUpload(
        name=req.name,
        course_name=course_name,
        topic_or_week_title=req.topic_or_week_title,
        item_title=req.item_title,
        text=req.text,
        uploaded_by=req.uploaded_by,
    )
    return await get_services().documents.upload(upload)


@router.post("/file", status_code=201)
async def upload_file(
    course_name: str,
    file: UploadFile = File(...),
    topic_or_week_title: str = Form(..., alias="topicOrWeekTitle"),
    item_title: str = Form(..., alias="itemTitle"),
    name: str | None = Form(None),
    uploaded_by: str = Form("system", alias="uploadedBy"),
):
    data = await file.read()
    upload = DocumentUpload(
        name=name or file.filename or "untitled",
        course_name=course_name,
        topic_or_week_title=topic_or_week_title,
        item_title=item_title,
        file_name=file.filename,
        file_bytes=data,
        uploaded_by=uploaded_by,
    )
    logger.info("File upload '%s' (%d bytes) for course '%s'", file.filename, len(data), course_name)
    return await get_services().documents.upload(upload)


@router.get("")
async def list_documents(course_name: str):
    return await get_services().documents.list_documents(course_name)


@router.delete("/{document_id}")
async def delete_document(course_name: str, document_id: str):
    record = await get_services().documents.delete_document(course_name, document_id)
    return {"deleted": True, "id": record.id, "vectorsDeleted": record.chunks_generated}


@router.delete("")
async def wipe_course_documents(course_name: str):
    return await get_services().documents.wipe_course(course_name)


@admin_router.delete("/nuclear")
async def nuclear_reset():
    """Drop every vector in the index.  Metadata records are left as they are."""
    logger.warning("Nuclear reset requested")
    return await get_services().documents.nuclear_reset()
