"""Response synthesizer: turns a classification and tool result into reply text."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from storechat.config import ModelConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.llm import LLMClient
from storechat.pipeline.classifier import strip_code_fences
from storechat.pipeline.guardrails import ResponseGuardrailPipeline
from storechat.pipeline.usage import StageUsage
from storechat.prompts.prompt_templates import build_responder_prompt
from storechat.prompts.response_templates import fallback_text
from storechat.prompts.system_prompts import APOLOGY_MESSAGE, GREETING_MESSAGE, RESPONDER_SYSTEM_PROMPT
from storechat.schemas.conversation_schema import Classification, Intent

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 4


@dataclass
class ResponderOutcome:
    text: str
    suggestions: list[str] = field(default_factory=list)
    usage: StageUsage = field(default_factory=StageUsage)
    used_fallback: bool = False


def parse_reply(text: str) -> tuple[str, list[str]]:
    """Extract (response, suggestions) from model output; plain text is accepted as the reply."""
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except ValueError:
        return cleaned, []
    if not isinstance(data, dict):
        return cleaned, []

    reply = data.get("response")
    suggestions = data.get("suggestions")
    if not isinstance(suggestions, list):
        suggestions = []
    suggestions = [s.strip() for s in suggestions if isinstance(s, str) and s.strip()]
    return (reply.strip() if isinstance(reply, str) else ""), suggestions[:MAX_SUGGESTIONS]


class ResponseSynthesizer:
    def __init__(
        self,
        llm: LLMClient,
        model_config: ModelConfig,
        guardrails: Optional[ResponseGuardrailPipeline] = None,
    ) -> None:
        self._llm = llm
        self._config = model_config
        self._guardrails = guardrails or ResponseGuardrailPipeline()

    def _fallback(
        self,
        classification: Classification,
        function_name: Optional[str],
        params: dict[str, Any],
        result: Optional[dict[str, Any]],
    ) -> str:
        if function_name and result is not None:
            return fallback_text(function_name, result, params)
        if classification.clarification_question:
            return classification.clarification_question
        if classification.intent == Intent.GREETING:
            return GREETING_MESSAGE
        return APOLOGY_MESSAGE

    async def respond(
        self,
        messages: list[dict[str, str]],
        classification: Classification,
        store_context: str,
        function_name: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        result: Optional[dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> ResponderOutcome:
        params = params or {}
        prompt = build_responder_prompt(
            messages[-self._config.responder_context_messages:],
            store_context,
            function_name,
            result,
            classification.clarification_question if classification.needs_clarification else None,
            classification.user_language,
        )
        try:
            completion = await self._llm.complete(
                [
                    {"role": "system", "content": RESPONDER_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._config.responder_temperature,
                max_tokens=self._config.responder_max_tokens,
                model=model,
                json_mode=True,
            )
        except ExternalServiceError as exc:
            logger.error("Responder call failed: %s", exc)
            return ResponderOutcome(
                self._fallback(classification, function_name, params, result), used_fallback=True
            )

        usage = StageUsage(completion.input_tokens, completion.output_tokens)
        reply, suggestions = parse_reply(completion.text)
        if not reply:
            logger.warning("Responder returned an empty reply")
            return ResponderOutcome(
                self._fallback(classification, function_name, params, result),
                usage=usage, used_fallback=True,
            )

        violations = self._guardrails.check_response(reply)
        if violations:
            logger.warning(
                "Reply blocked by guardrails: %s", ", ".join(v.violation_type for v in violations)
            )
            return ResponderOutcome(
                self._fallback(classification, function_name, params, result),
                usage=usage, used_fallback=True,
            )
        suggestions = [s for s in suggestions if not self._guardrails.check_response(s)]
        return ResponderOutcome(reply, suggestions, usage)
