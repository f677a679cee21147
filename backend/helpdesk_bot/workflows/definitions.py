# /helpdesk_bot/workflows/definitions.py

"""
Flow definitions and their triggers.

Everything here is static and resolved once at import time:
- FLOWS maps a flow name to its ordered steps
- TEXT_TRIGGERS are checked in order before any intent classification;
  the first matching pattern wins and its first group becomes the step-0 input
- INTENT_TRIGGERS maps a classifier intent name to a flow name
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Pattern, Tuple

from helpdesk_bot.workflows.flows.help import HELP_STEPS
from helpdesk_bot.workflows.flows.submit_ticket import SUBMIT_TICKET_STEPS
from helpdesk_bot.workflows.flows.knowledge_base import (
    EXPLORE_KB_STEPS,
    SEARCH_KB_STEPS,
    SHOW_KB_RESULTS_STEPS,
    DETAILS_OF_STEPS,
)


@dataclass(frozen=True)
class FlowDefinition:
    name: str
    steps: Tuple[Callable, ...]

    def __len__(self) -> int:
        return len(self.steps)


FLOWS: Dict[str, FlowDefinition] = {
    flow.name: flow
    for flow in (
        FlowDefinition("Help", HELP_STEPS),
        FlowDefinition("SubmitTicket", SUBMIT_TICKET_STEPS),
        FlowDefinition("ExploreKnowledgeBase", EXPLORE_KB_STEPS),
        FlowDefinition("SearchKB", SEARCH_KB_STEPS),
        FlowDefinition("ShowKBResults", SHOW_KB_RESULTS_STEPS),
        FlowDefinition("DetailsOf", DETAILS_OF_STEPS),
    )
}

TEXT_TRIGGERS: List[Tuple[Pattern, str]] = [
    (re.compile(r"^search about (.*)", re.IGNORECASE | re.DOTALL), "SearchKB"),
    (re.compile(r"^show me the article (.*)", re.IGNORECASE | re.DOTALL), "DetailsOf"),
]

INTENT_TRIGGERS: Dict[str, str] = {
    "Help": "Help",
    "SubmitTicket": "SubmitTicket",
    "ExploreKnowledgeBase": "ExploreKnowledgeBase",
}
