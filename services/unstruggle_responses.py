"""Canned replies for when a student marks a struggle topic as mastered."""

from __future__ import annotations

import random

YES_RESPONSES: tuple[str, ...] = (
    "Great! Is there anything else I can help you with?",
    "Excellent! Feel free to ask if you have any other questions.",
    "Wonderful! Let me know if there's anything more you'd like to explore.",
    "That's fantastic! I'm here if you need help with anything else.",
    "Awesome! Don't hesitate to reach out if you have more questions.",
    "Perfect! What else would you like to work on?",
    "Great to hear! Is there another topic you'd like to discuss?",
    "Excellent! I'm here whenever you need assistance with other concepts.",
)

NO_RESPONSES: tuple[str, ...] = (
    "No problem! Would you like to practice more with this topic?",
    "That's perfectly fine! Let's continue practicing. What would you like to focus on?",
    "I understand. Let's work through some more examples together. What aspect would you like to explore?",
    "Sure thing! We can keep practicing. What specific part would you like to work on?",
    "Of course! Let's dive deeper. What would you like to practice?",
    "Absolutely! What would you like to focus on for more practice?",
    "That's okay! Let's continue working on this. What would you like to explore next?",
    "No worries! I'm here to help you practice. What would you like to work on?",
)

# Topic already gone (removed earlier or by a concurrent request)
ALREADY_REMOVED_RESPONSES: tuple[str, ...] = (
    "It looks like you have already mastered this topic. Thank you for trusting EngE AI.",
)


def random_yes_response() -> str:
    return random.choice(YES_RESPONSES)


def random_no_response() -> str:
    return random.choice(NO_RESPONSES)


def random_already_removed_response() -> str:
    return random.choice(ALREADY_REMOVED_RESPONSES)
