# /helpdesk_bot/workflows/flows/knowledge_base.py

"""
Knowledge base flows: explore by category, free-text search, result
carousel and article details. Explore and search both hand their results to
ShowKBResults through a Replace, so they never get control back.
"""

import re
import logging
from typing import Any, Dict, Optional

from helpdesk_bot.config import strings
from helpdesk_bot.models.domain import IntentResult, OutboundMessage, SearchItem, SearchResult, Attachment
from helpdesk_bot.models.errors import SearchUnavailable
from helpdesk_bot.models.flow import (
    Continue,
    End,
    PendingPrompt,
    PromptType,
    Replace,
    StepContext,
    StepResult,
    Suspend,
)
from helpdesk_bot.services.card_service import THUMBNAIL_CARD_CONTENT_TYPE
from helpdesk_bot.services.search_service import facet_expression, filter_eq_expression, search_expression

logger = logging.getLogger(__name__)

SHOW_RESULTS_FLOW = "ShowKBResults"
ARTICLE_PREFIX = "show me the article "
SUMMARY_LENGTH = 50

_FACET_COUNT_RE = re.compile(r"\s\(\d+\)$")


def _search_failed() -> End:
    return End(OutboundMessage(text=strings.SEARCH_UNAVAILABLE))


def _results_payload(result: SearchResult, original_text: str) -> Dict[str, Any]:
    return {"result": result, "original_text": original_text}


# --- ExploreKnowledgeBase ---

async def choose_category(ctx: StepContext, intent: Optional[IntentResult]) -> StepResult:
    entity = intent.find_entity("category") if intent else None
    if entity is not None and entity.value.strip():
        ctx.dialog_data["category"] = entity.value.strip()
        return Continue()

    try:
        result = await ctx.search.query(facet_expression("category"))
    except SearchUnavailable:
        return _search_failed()

    choices = [f"{facet.value} ({facet.count})" for facet in result.facets.get("category", [])]
    if not choices:
        return End(OutboundMessage(text=strings.KB_NO_CATEGORIES))

    return Suspend(PendingPrompt(
        prompt_type=PromptType.CHOICE,
        text=strings.CATEGORY_CHOICE_PROMPT,
        choices=choices,
    ))


async def search_by_category(ctx: StepContext, answer: Optional[str]) -> StepResult:
    category = ctx.dialog_data.get("category") or _FACET_COUNT_RE.sub("", answer or "", count=1)

    try:
        result = await ctx.search.query(filter_eq_expression("category", category))
    except SearchUnavailable:
        return _search_failed()

    return Replace(SHOW_RESULTS_FLOW, _results_payload(result, category))


# --- SearchKB ---

async def search_articles(ctx: StepContext, query: str) -> StepResult:
    query = (query or "").strip()
    try:
        result = await ctx.search.query(search_expression(query))
    except SearchUnavailable:
        return _search_failed()

    return Replace(SHOW_RESULTS_FLOW, _results_payload(result, query))


# --- ShowKBResults ---

def summarize(text: str) -> str:
    if len(text) <= SUMMARY_LENGTH:
        return text
    return text[:SUMMARY_LENGTH] + "..."


def build_article_card(item: SearchItem) -> Attachment:
    return Attachment(
        content_type=THUMBNAIL_CARD_CONTENT_TYPE,
        content={
            "title": item.title,
            "subtitle": strings.KB_CARD_SUBTITLE.format(category=item.category, score=item.score),
            "text": summarize(item.text),
            "images": [{"url": strings.KB_CARD_IMAGE_URL}],
            "buttons": [{
                "type": "postBack",
                "title": strings.KB_MORE_DETAILS,
                "value": f"{ARTICLE_PREFIX}{item.title}",
            }],
        },
    )


async def show_results(ctx: StepContext, payload: Dict[str, Any]) -> StepResult:
    result: SearchResult = payload["result"]
    original_text = payload["original_text"]

    if not result.items:
        return End(OutboundMessage(text=strings.KB_NO_RESULTS.format(original_text=original_text)))

    return End(OutboundMessage(
        text=strings.KB_RESULTS_INTRO.format(original_text=original_text),
        attachments=[build_article_card(item) for item in result.items],
        attachment_layout="carousel",
    ))


# --- DetailsOf ---

async def show_article(ctx: StepContext, title: str) -> StepResult:
    try:
        result = await ctx.search.query(filter_eq_expression("title", title or ""))
    except SearchUnavailable:
        return _search_failed()

    if not result.items:
        logger.info(f"No article titled '{title}'")
        return End(OutboundMessage(text=strings.ARTICLE_NOT_FOUND))
    return End(OutboundMessage(text=result.items[0].text))


EXPLORE_KB_STEPS = (choose_category, search_by_category)
SEARCH_KB_STEPS = (search_articles,)
SHOW_KB_RESULTS_STEPS = (show_results,)
DETAILS_OF_STEPS = (show_article,)
