"""
API token usage and cost tracking
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .deferred import DeferredCall
from .storage import API_USAGE_KEY, PRICING_KEY

logger = logging.getLogger(__name__)


@dataclass
class Pricing:
    """USD per one million tokens"""
    model: str = "gpt-4.1-nano"
    input_per_1m: float = 0.10
    output_per_1m: float = 0.40
    last_updated: str = "2026-01-23"
    source: str = "https://openai.com/api/pricing/"


MODEL_PRICING: Dict[str, Pricing] = {
    "gpt-5-nano": Pricing(model="gpt-5-nano", input_per_1m=0.05, output_per_1m=0.40),
    "gpt-5-mini": Pricing(model="gpt-5-mini", input_per_1m=0.25, output_per_1m=2.00),
    "gpt-4.1-nano": Pricing(model="gpt-4.1-nano", input_per_1m=0.10, output_per_1m=0.40),
    "gpt-5.2": Pricing(model="gpt-5.2", input_per_1m=1.75, output_per_1m=14.00),
}


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    calls: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output


@dataclass
class UsageTracker:
    """Token counters persisted across sessions, saved after a quiet period"""
    store: Any
    pricing: Pricing = field(default_factory=Pricing)
    usage: TokenUsage = field(default_factory=TokenUsage)
    save_delay: float = 1.0

    def __post_init__(self):
        self._save_call = DeferredCall(self.save, delay=self.save_delay)

    @classmethod
    def for_model(cls, store, model: str, save_delay: float = 1.0) -> "UsageTracker":
        pricing = MODEL_PRICING.get(model, Pricing(model=model))
        return cls(store=store, pricing=Pricing(**asdict(pricing)), save_delay=save_delay)

    async def load(self) -> None:
        stored = await self.store.get(API_USAGE_KEY, "")
        if stored:
            try:
                self.usage = TokenUsage(**json.loads(stored))
            except (ValueError, TypeError):
                logger.debug("usage counters unreadable, starting from zero")
        stored = await self.store.get(PRICING_KEY, "")
        if stored:
            try:
                self.pricing = Pricing(**json.loads(stored))
            except (ValueError, TypeError):
                logger.debug("pricing unreadable, keeping defaults")

    def record(self, usage: Optional[Mapping[str, Any]]) -> bool:
        """Add a provider usage block (OpenAI or Anthropic field names)"""
        if not usage:
            return False
        input_tokens = int(usage.get("input_tokens") or usage.get("prompt_tokens") or 0)
        output_tokens = int(usage.get("output_tokens") or usage.get("completion_tokens") or 0)
        if not input_tokens and not output_tokens:
            logger.warning("no token data found in usage object: %s", dict(usage))
            return False

        self.usage.input += input_tokens
        self.usage.output += output_tokens
        self.usage.calls += 1
        logger.debug(
            "tokens: +%d input, +%d output (total: %d)",
            input_tokens,
            output_tokens,
            self.usage.total,
        )
        self._save_call.rearm()
        return True

    def cost(self) -> float:
        return (
            self.usage.input * self.pricing.input_per_1m / 1_000_000
            + self.usage.output * self.pricing.output_per_1m / 1_000_000
        )

    async def save(self) -> None:
        try:
            await self.store.set(API_USAGE_KEY, json.dumps(asdict(self.usage)))
        except Exception as exc:
            logger.debug("usage save failed: %s", exc)

    async def reset(self) -> None:
        self._save_call.cancel()
        self.usage = TokenUsage()
        await self.save()

    async def update_pricing(self, **changes: Any) -> None:
        values = {**asdict(self.pricing), **changes, "last_updated": date.today().isoformat()}
        self.pricing = Pricing(**values)
        await self.store.set(PRICING_KEY, json.dumps(asdict(self.pricing)))

    async def reset_pricing(self) -> None:
        self.pricing = Pricing(**asdict(MODEL_PRICING.get(self.pricing.model, Pricing())))
        await self.store.set(PRICING_KEY, json.dumps(asdict(self.pricing)))

    async def close(self) -> None:
        if self._save_call.armed:
            self._save_call.cancel()
            await self.save()
