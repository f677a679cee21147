# /helpdesk_bot/services/intent_service.py

import httpx
import logging
from typing import Any, Dict, List

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.domain import Entity, IntentResult
from helpdesk_bot.models.errors import ClassificationError
from helpdesk_bot.utils.circuit_breaker import CircuitBreaker, CircuitOpenError
from helpdesk_bot.utils.metrics import external_calls_counter

# This service wraps the hosted intent classification model. It maps free
# text to the top intent plus its extracted entities. The model itself is a
# black box reached over HTTP (LUIS v2 response shape).

logger = logging.getLogger(__name__)

NONE_INTENT = "None"


class IntentService:
    def __init__(self, classifier_url: str, timeout: float):
        # The published URL carries subscription-key and verbose in its query
        # and ends with an empty "q=". httpx drops a URL's own query when
        # params are passed, so those are re-sent with every request.
        url = httpx.URL(classifier_url)
        self.base_params = {k: v for k, v in url.params.items() if k != "q"}
        self.classifier_url = str(url.copy_with(query=None))
        self.http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.circuit_breaker = CircuitBreaker("classifier")

    async def classify(self, text: str) -> IntentResult:
        """Classify an utterance. Any failure, including timeouts, raises ClassificationError."""
        try:
            response = await self.circuit_breaker.call(
                self.http_client.get, self.classifier_url, params={**self.base_params, "q": text}
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, CircuitOpenError, ValueError) as e:
            external_calls_counter.labels(service="classifier", status="error").inc()
            logger.error(f"Intent classification failed: {e}")
            raise ClassificationError(str(e)) from e

        external_calls_counter.labels(service="classifier", status="success").inc()
        return self._parse_response(body)

    @staticmethod
    def _parse_response(body: Dict[str, Any]) -> IntentResult:
        top = body.get("topScoringIntent")
        if not isinstance(top, dict) or "intent" not in top:
            raise ClassificationError("Classifier response has no topScoringIntent")

        entities: List[Entity] = []
        for raw in body.get("entities") or []:
            resolution = raw.get("resolution") or {}
            values = resolution.get("values") or []
            if not values and resolution.get("value"):
                values = [resolution["value"]]
            entities.append(Entity(
                type=raw.get("type", ""),
                value=raw.get("entity", ""),
                confidence=raw.get("score"),
                resolution=[str(v) for v in values],
            ))

        return IntentResult(
            intent=top["intent"],
            top_score=float(top.get("score") or 0.0),
            entities=entities,
            query=body.get("query"),
        )

    async def cleanup(self):
        await self.http_client.aclose()


# Globally accessible instance
intent_service = IntentService(settings.classifier_url, settings.classifier_timeout_seconds)
