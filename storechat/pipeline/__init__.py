from storechat.pipeline.classifier import IntentClassifier
from storechat.pipeline.guardrails import ResponseGuardrailPipeline
from storechat.pipeline.orchestrator import (
    ChatOrchestrator,
    FunctionNotAllowedError,
    StoreNotFoundError,
)
from storechat.pipeline.responder import ResponseSynthesizer

__all__ = [
    "IntentClassifier",
    "ResponseSynthesizer",
    "ResponseGuardrailPipeline",
    "ChatOrchestrator",
    "StoreNotFoundError",
    "FunctionNotAllowedError",
]
