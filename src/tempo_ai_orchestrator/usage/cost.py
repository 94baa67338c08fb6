# tempo_ai_orchestrator/usage/cost.py
"""Generation cost estimates."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..config import COST_PER_TOKEN_USD, EXPECTED_RESPONSE_TOKENS


class CostModel(BaseModel):
    """Flat per-token pricing; prompt and response tokens cost the same."""

    cost_per_token_usd: float = Field(default=COST_PER_TOKEN_USD, ge=0.0)
    expected_response_tokens: int = Field(default=EXPECTED_RESPONSE_TOKENS, ge=0)

    def projected(self, prompt_tokens: int) -> float:
        """Cost of a request before the response is known."""
        return (prompt_tokens + self.expected_response_tokens) * self.cost_per_token_usd

    def actual(self, prompt_tokens: int, response_tokens: int) -> float:
        return (prompt_tokens + response_tokens) * self.cost_per_token_usd
