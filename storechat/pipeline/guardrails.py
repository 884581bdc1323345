"""
Response guardrails applied to model-written replies before they reach the widget.

Three independent layers, each checking a different concern:
1. LeakGuardrail          - internal names, error payloads and stack traces
2. HallucinationGuardrail - unverified business claims
3. FormatGuardrail        - image markdown and AI self-references

Any violation makes the responder fall back to deterministic template text.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from storechat.tools.registry import get_registered_tools

logger = logging.getLogger(__name__)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None


class LeakGuardrail:
    """Blocks replies exposing tool names, result fields or raw errors."""

    INTERNAL_TERMS = [
        "needs_clarification", "function_to_call", "extracted_params",
        "service_id", "invite_calendar", "calendar_id", "booking_id",
        "rich_content", "traceback", "stack trace",
        "externalserviceerror", "http 4", "http 5", "status code",
        "supabase", "json",
    ]

    def check_response(self, text: str) -> GuardrailResult:
        lower = text.lower()
        for term in self.INTERNAL_TERMS + get_registered_tools():
            if term in lower:
                logger.warning("Reply leaks internal term: '%s'", term)
                return GuardrailResult(
                    passed=False,
                    violation_type="internal_leak",
                    message=f"Reply mentions internal term '{term}'.",
                )
        return GuardrailResult(passed=True)


class HallucinationGuardrail:
    """Detects promises the store never made."""

    FORBIDDEN_CLAIMS = [
        "we guarantee", "guaranteed", "money-back", "full refund",
        "award-winning", "best in town", "cheapest", "lowest price",
    ]

    def check_response(self, text: str) -> GuardrailResult:
        lower = text.lower()
        for claim in self.FORBIDDEN_CLAIMS:
            if claim in lower:
                logger.warning("Hallucination detected: '%s'", claim)
                return GuardrailResult(
                    passed=False,
                    violation_type="potential_hallucination",
                    message=f"Reply contains unverified claim: '{claim}'.",
                )
        return GuardrailResult(passed=True)


class FormatGuardrail:
    """Keeps replies as plain chat text."""

    IMAGE_MARKDOWN = re.compile(r"!\[[^\]]*\]\([^)]*\)")
    FORBIDDEN_PATTERNS = ["as an ai", "as a language model", "```"]

    def check_response(self, text: str) -> GuardrailResult:
        if self.IMAGE_MARKDOWN.search(text):
            return GuardrailResult(
                passed=False,
                violation_type="image_markdown",
                message="Reply contains image markdown.",
            )
        lower = text.lower()
        for pattern in self.FORBIDDEN_PATTERNS:
            if pattern in lower:
                return GuardrailResult(
                    passed=False,
                    violation_type="format_violation",
                    message=f"Reply contains '{pattern}'.",
                )
        return GuardrailResult(passed=True)


class ResponseGuardrailPipeline:
    """Composes all response guardrails."""

    def __init__(self) -> None:
        self.leak = LeakGuardrail()
        self.hallucination = HallucinationGuardrail()
        self.format = FormatGuardrail()

    def check_response(self, text: str) -> list[GuardrailResult]:
        results = [
            self.leak.check_response(text),
            self.hallucination.check_response(text),
            self.format.check_response(text),
        ]
        return [r for r in results if not r.passed]
