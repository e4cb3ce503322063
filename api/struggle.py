"""Struggle-topic ledger API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from models.ledger import AnalyzeRequest, TopicsRequest
from services.registry import get_services
from services.unstruggle_responses import (
    random_already_removed_response,
    random_no_response,
    random_yes_response,
)

router = APIRouter(prefix="/api/courses/{course_name}/struggle-topics", tags=["struggle-topics"])


@router.get("/{user_id}")
async def get_topics(course_name: str, user_id: int):
    topics = await get_services().ledger.get_topics(user_id, course_name)
    return {"userId": user_id, "struggleTopics": topics}


@router.post("/{user_id}")
async def merge_topics(course_name: str, user_id: int, req: TopicsRequest):
    return await get_services().ledger.merge_topics(user_id, course_name, req.topics)


@router.post("/{user_id}/analyze")
async def analyze_conversation(course_name: str, user_id: int, req: AnalyzeRequest):
    """Extract struggle topics from a chat turn.  Never fails the caller."""
    labels = await get_services().analyzer.analyze_and_update(
        user_id, course_name, req.system_prompt, req.user_messages,
    )
    return {"userId": user_id, "extracted": labels}


@router.delete("/{user_id}")
async def remove_topic(course_name: str, user_id: int, topic: str = Query(..., min_length=1)):
    """Student marked *topic* as mastered."""
    removed = await get_services().ledger.remove_topic(user_id, course_name, topic)
    return {
        "removed": removed,
        "message": random_yes_response() if removed else random_already_removed_response(),
    }


@router.post("/{user_id}/keep-practicing")
async def keep_practicing(course_name: str, user_id: int):
    """Student is not yet confident; the topic stays in the ledger."""
    return {"removed": False, "message": random_no_response()}
