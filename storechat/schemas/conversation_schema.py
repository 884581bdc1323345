"""Chat request/response and classification schemas."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Intent(str, Enum):
    SERVICE_INQUIRY = "SERVICE_INQUIRY"
    PRODUCT_INQUIRY = "PRODUCT_INQUIRY"
    INFO_REQUEST = "INFO_REQUEST"
    BOOKING_REQUEST = "BOOKING_REQUEST"
    LEAD_GENERATION = "LEAD_GENERATION"
    RECOMMENDATION_REQUEST = "RECOMMENDATION_REQUEST"
    GREETING = "GREETING"
    OTHER = "OTHER"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def from_score(cls, score: float) -> "Confidence":
        """Map a 0-100 model score onto a level."""
        if score >= 85:
            return cls.HIGH
        if score >= 70:
            return cls.MEDIUM
        return cls.LOW


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class Classification(BaseModel):
    """Structured output of the intent classifier for one user turn."""

    model_config = ConfigDict(populate_by_name=True)

    intent: Intent = Intent.OTHER
    confidence: Confidence = Confidence.LOW
    params: dict[str, Any] = Field(default_factory=dict)
    function_to_call: Optional[str] = Field(default=None, serialization_alias="functionToCall")
    needs_clarification: bool = False
    clarification_question: Optional[str] = None
    reasoning: str = ""
    user_language: str = "en"

    @classmethod
    def safe_default(cls) -> "Classification":
        return cls()


class ChatRequest(BaseModel):
    """Body of POST /chat."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(min_length=1)
    store_id: str = Field(alias="storeId", min_length=1)
    model: Optional[str] = None
    cached_data: Optional[dict[str, list[dict[str, Any]]]] = Field(default=None, alias="cachedData")


class FunctionCallRequest(BaseModel):
    """Body of POST /functions/{name}."""

    model_config = ConfigDict(populate_by_name=True)

    store_id: str = Field(alias="storeId", min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class FunctionCallRecord(BaseModel):
    """One tool execution as reported in debug metadata."""

    name: str
    arguments: dict[str, Any]
    result: dict[str, Any]
    duration_ms: float = Field(serialization_alias="duration")


class TokenUsage(BaseModel):
    input: int = 0
    output: int = 0
    total: int = 0


class DebugInfo(BaseModel):
    intent: dict[str, Any]
    function_calls: list[FunctionCallRecord] = Field(
        default_factory=list, serialization_alias="functionCalls"
    )
    timings: dict[str, float] = Field(default_factory=dict)
    tokens: dict[str, TokenUsage] = Field(default_factory=dict)
    cost: dict[str, float] = Field(default_factory=dict)
    model: str = ""
    request_id: str = Field(default="", serialization_alias="requestId")


class ChatResponse(BaseModel):
    text: str
    rich_content: Optional[dict[str, Any]] = Field(default=None, serialization_alias="richContent")
    suggestions: list[str] = Field(default_factory=list)
    debug: Optional[DebugInfo] = None

    def to_api(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("richContent", "debug"):
            if data.get(key) is None:
                data.pop(key, None)
        return data
