# /helpdesk_bot/workflows/validator.py

"""
Pure validation functions for prompt answers.

A suspended step only resumes once the user's answer has the shape its
prompt asked for. These functions turn raw text into that shape or raise
PromptValidationError, in which case the engine re-issues the same prompt.

All functions are pure: no I/O, no logging, no state mutation.
"""

import re
from typing import Any, List

from helpdesk_bot.models.errors import PromptValidationError
from helpdesk_bot.models.flow import PendingPrompt, PromptType

YES_PATTERNS = [
    r'^y(es)?$', r'^yeah?$', r'^yep$', r'^yup$', r'^sure$',
    r'^ok(ay)?$', r'^correct$', r'^right$', r"^that'?s (right|correct)$",
    r'^confirm(ed)?$', r'^please do$',
]

NO_PATTERNS = [
    r'^no?$', r'^nope$', r'^nah$', r'^cancel$', r'^not (now|really)$',
    r"^that'?s (wrong|not right)$", r"^don'?t$", r'^stop$',
]


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower()).rstrip(".!")


def parse_text(text: str) -> str:
    """Any non-blank text is a valid free-text answer."""
    value = (text or "").strip()
    if not value:
        raise PromptValidationError("Expected a non-empty answer")
    return value


def parse_choice(text: str, choices: List[str]) -> str:
    """
    Match an answer against the offered choices.

    Accepts the choice text (case-insensitive) or its 1-based position in
    the list, and returns the choice exactly as offered.
    """
    answer = _normalize(text)
    if not answer:
        raise PromptValidationError("Expected one of the offered choices")

    for choice in choices:
        if _normalize(choice) == answer:
            return choice

    if answer.isdigit():
        index = int(answer) - 1
        if 0 <= index < len(choices):
            return choices[index]

    raise PromptValidationError(f"'{text}' is not one of {choices}")


def parse_confirm(text: str) -> bool:
    answer = _normalize(text)
    for pattern in YES_PATTERNS:
        if re.match(pattern, answer):
            return True
    for pattern in NO_PATTERNS:
        if re.match(pattern, answer):
            return False
    raise PromptValidationError(f"'{text}' is not a yes/no answer")


def parse_answer(prompt: PendingPrompt, text: str) -> Any:
    """Parse `text` as the answer to `prompt`, or raise PromptValidationError."""
    if prompt.prompt_type == PromptType.CHOICE:
        return parse_choice(text, prompt.choices)
    if prompt.prompt_type == PromptType.CONFIRM:
        return parse_confirm(text)
    return parse_text(text)
