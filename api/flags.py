"""Flag reports API — submission, moderation and statistics.

Domain errors (unknown flag, rejected transition) propagate to the
exception handler registered in ``main.py``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from models.flag import FlagStatus, FlagSubmission, StatusChangeRequest
from services.registry import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses/{course_name}/flags", tags=["flags"])


@router.post("", status_code=201)
async def create_flag(course_name: str, req: FlagSubmission):
    return await get_services().flags.create_flag(course_name, req)


@router.get("")
async def list_flags(
    course_name: str,
    status: FlagStatus | None = Query(None),
    user_id: int | None = Query(None, alias="userId"),
):
    flags = get_services().flags
    if user_id is not None:
        return await flags.list_user_flags(course_name, user_id)
    return await flags.list_flags(course_name, status)


@router.get("/statistics")
async def flag_statistics(course_name: str):
    return await get_services().flags.compute_statistics(course_name)


@router.get("/validation")
async def validate_flags(course_name: str):
    return await get_services().flags.validate_collection(course_name)


@router.post("/indexes")
async def create_flag_indexes(course_name: str):
    return await get_services().indexes.ensure_flag_indexes(course_name)


@router.get("/{flag_id}")
async def get_flag(course_name: str, flag_id: str):
    return await get_services().flags.get_flag(course_name, flag_id)


@router.patch("/{flag_id}/status")
async def change_flag_status(course_name: str, flag_id: str, req: StatusChangeRequest):
    return await get_services().flags.apply_status_change(
        course_name, flag_id, req.status, response=req.response, actor_id=req.actor_id,
    )


@router.delete("/{flag_id}", status_code=204)
async def delete_flag(course_name: str, flag_id: str):
    await get_services().flags.delete_flag(course_name, flag_id)
