"""
Intent classifier: one LLM call per user turn producing a Classification.

The model's JSON is normalised here (legacy keys, numeric confidence,
parameter aliases, relative dates). Anything unparseable or a failed call
degrades to the safe default classification instead of raising.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from storechat.config import ModelConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.llm import LLMClient
from storechat.pipeline.usage import StageUsage
from storechat.prompts.prompt_templates import build_classification_prompt
from storechat.prompts.system_prompts import CLASSIFIER_SYSTEM_PROMPT
from storechat.schemas.conversation_schema import Classification, Confidence, Intent
from storechat.tools.registry import get_registered_tools
from storechat.utils import resolve_relative_date

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)

PARAM_ALIASES = {
    "email": "customer_email",
    "phone": "customer_phone",
    "name": "customer_name",
    "service": "service_name",
}
PREFILL_KEYS = {
    "date": "prefill_date",
    "time": "prefill_time",
    "customer_name": "prefill_name",
    "customer_email": "prefill_email",
    "customer_phone": "prefill_phone",
}
DATE_KEYS = ("date", "start_date", "end_date", "prefill_date")


@dataclass
class ClassifierOutcome:
    classification: Classification
    usage: StageUsage = field(default_factory=StageUsage)
    model: str = ""
    failed: bool = False


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


def _parse_confidence(value: Any) -> Confidence:
    if isinstance(value, str):
        upper = value.strip().upper()
        if upper in Confidence.__members__:
            return Confidence[upper]
        try:
            value = float(upper)
        except ValueError:
            return Confidence.LOW
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Confidence.from_score(float(value))
    return Confidence.LOW


def _parse_intent(value: Any) -> Intent:
    if isinstance(value, str) and value.strip().upper() in Intent.__members__:
        return Intent[value.strip().upper()]
    return Intent.OTHER


def normalize_params(
    raw: Any, function_name: Optional[str], now: datetime
) -> dict[str, Any]:
    """Drop empty values, map aliases, route booking-calendar prefills, resolve dates."""
    if not isinstance(raw, dict):
        return {}
    params: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        params.setdefault(PARAM_ALIASES.get(key, key), value)

    if function_name == "get_booking_slots":
        for key, prefill in PREFILL_KEYS.items():
            if key in params:
                params.setdefault(prefill, params.pop(key))

    for key in DATE_KEYS:
        if isinstance(params.get(key), str):
            params[key] = resolve_relative_date(params[key], now)
    return params


def parse_classification(text: str, now: datetime) -> Classification:
    """Turn raw model output into a Classification; never raises."""
    try:
        data = json.loads(strip_code_fences(text or ""))
    except (ValueError, TypeError):
        logger.warning("Classifier returned non-JSON output: %r", (text or "")[:200])
        return Classification.safe_default()
    if not isinstance(data, dict):
        logger.warning("Classifier returned JSON that is not an object")
        return Classification.safe_default()

    function_name = data.get("function_to_call", data.get("function"))
    if function_name is not None and function_name not in get_registered_tools():
        logger.warning("Classifier recommended unknown function %r", function_name)
        function_name = None

    raw_params = data.get("extracted_params", data.get("parameters", data.get("params")))
    question = data.get("clarification_question")
    language = data.get("user_language")
    return Classification(
        intent=_parse_intent(data.get("intent")),
        confidence=_parse_confidence(data.get("confidence")),
        params=normalize_params(raw_params, function_name, now),
        function_to_call=function_name,
        needs_clarification=bool(data.get("needs_clarification")),
        clarification_question=question if isinstance(question, str) and question.strip() else None,
        reasoning=str(data.get("reasoning") or ""),
        user_language=language.strip().lower()[:5] if isinstance(language, str) and language.strip() else "en",
    )


class IntentClassifier:
    def __init__(self, llm: LLMClient, model_config: ModelConfig) -> None:
        self._llm = llm
        self._config = model_config

    async def classify(
        self,
        messages: list[dict[str, str]],
        now: datetime,
        store_context: str,
        model: Optional[str] = None,
    ) -> ClassifierOutcome:
        model = model or self._config.llm_model
        history = messages[-self._config.classifier_context_messages:]
        last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        today = now.date()
        prompt = build_classification_prompt(
            history,
            last_user,
            today.isoformat(),
            (today + timedelta(days=1)).isoformat(),
            store_context,
        )

        try:
            result = await self._llm.complete(
                [
                    {"role": "system", "content": CLASSIFIER_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._config.classifier_temperature,
                max_tokens=self._config.classifier_max_tokens,
                model=model,
                json_mode=True,
            )
        except ExternalServiceError as exc:
            logger.error("Classifier call failed: %s", exc)
            return ClassifierOutcome(Classification.safe_default(), model=model, failed=True)

        classification = parse_classification(result.text, now)
        logger.info(
            "Classified as %s (%s) -> %s",
            classification.intent.value, classification.confidence.value,
            classification.function_to_call,
        )
        return ClassifierOutcome(
            classification,
            StageUsage(result.input_tokens, result.output_tokens),
            model=model,
        )
