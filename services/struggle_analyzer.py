"""Struggle-topic extraction from chat turns.

After a student's chat turn the conversation is sent to an LLM which
answers with a comma-separated list of topics the student appears to
struggle with.  The answer is untrusted free text: it is normalized and
merged into the ledger, never stored verbatim.

Analysis is best-effort.  A failure here must not break the chat flow,
so errors are logged and swallowed.
"""

from __future__ import annotations

import logging

import litellm

from config.settings import get_settings
from services.concurrency import rate_limited_llm_call
from services.normalization import parse_label_list
from services.struggle_ledger import StruggleTopicLedger

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = (
    "Read the student's messages below and list the course topics or concepts "
    "they are struggling with. Answer with a comma-separated list of short "
    "topic names and nothing else. Answer with an empty string if there are none.\n\n"
    "Student messages:\n"
)


class StruggleAnalyzer:
    def __init__(self, ledger: StruggleTopicLedger, model: str | None = None) -> None:
        self._ledger = ledger
        self._model = model

    async def extract_labels(self, system_prompt: str, user_messages: str) -> list[str]:
        settings = get_settings()
        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": ANALYSIS_PROMPT + user_messages})

        resp = await rate_limited_llm_call(
            litellm.acompletion,
            model=self._model or settings.label_model,
            messages=messages,
            max_tokens=settings.label_max_tokens,
            timeout=settings.label_timeout,
        )
        content = resp.choices[0].message.content
        if not content:
            logger.warning("Label extraction returned empty content")
            return []
        return parse_label_list(content)

    async def analyze_and_update(
        self,
        user_id: int,
        course_name: str,
        system_prompt: str,
        user_messages: str,
    ) -> list[str]:
        """Extract labels and merge them.  Returns the labels extracted (may be empty)."""
        if not user_id:
            logger.warning("Invalid userId %r, skipping struggle analysis", user_id)
            return []
        if not user_messages or not user_messages.strip():
            return []

        try:
            labels = await self.extract_labels(system_prompt, user_messages)
            if labels:
                await self._ledger.merge_topics(user_id, course_name, labels)
                logger.info("User %s: extracted %d struggle topics", user_id, len(labels))
            return labels
        except Exception:
            logger.exception("Struggle analysis failed for user %s in '%s'", user_id, course_name)
            return []
