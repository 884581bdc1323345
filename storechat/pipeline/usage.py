"""Token accounting and cost estimation per pipeline stage."""

from dataclasses import dataclass

from storechat.config import MODEL_PRICING


@dataclass
class StageUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens

    def as_dict(self) -> dict[str, int]:
        return {"input": self.input_tokens, "output": self.output_tokens, "total": self.total}


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """USD cost from per-million-token prices. Unknown models cost 0."""
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        return 0.0
    input_price, output_price = pricing
    return round((input_tokens * input_price + output_tokens * output_price) / 1_000_000, 8)
