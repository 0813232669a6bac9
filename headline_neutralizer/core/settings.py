"""
Runtime settings for headline_neutralizer
"""
from __future__ import annotations

import os
from typing import Dict, List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


STRENGTH_LEVELS: Dict[str, float] = {
    "Minimal": 0.0,
    "Light": 0.1,
    "Moderate": 0.2,
    "Strong": 0.35,
    "Maximum": 0.5,
}

PROVIDERS = ("openai", "openrouter", "anthropic")

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

DEFAULT_MODELS = {
    "openai": "gpt-4.1-nano",
    "openrouter": "openai/gpt-4.1-nano",
    "anthropic": "claude-3-5-haiku-latest",
}

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}


class NeutralizerSettings(BaseSettings):
    """Engine configuration, overridable through NEUTRALIZER_* variables"""

    model_config = SettingsConfigDict(env_prefix="NEUTRALIZER_", extra="ignore")

    # rewrite provider
    provider: str = "openai"
    model: Optional[str] = None
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    strength: Optional[str] = None
    api_base_url: Optional[str] = None
    request_timeout: float = 30.0
    max_output_tokens: int = 1000
    max_batch: int = Field(default=24, gt=0)
    flush_delay_ms: int = Field(default=180, ge=0)

    # discovery
    auto_detect: bool = True
    min_len: int = 8
    max_len: int = 180
    sanity_check_len: int = 500
    min_words: int = 3
    max_words: int = 35
    score_threshold: float = 75
    top_k_per_card: int = Field(default=1, gt=0)
    kicker_filter_strict: bool = True
    show_original_on_hover: bool = True

    # cache
    cache_limit: int = Field(default=1500, gt=0)
    cache_trim_to: int = Field(default=1100, ge=0)
    persist_delay_ms: int = Field(default=250, ge=0)

    debug: bool = False
    debug_scores: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> "NeutralizerSettings":
        if self.cache_trim_to > self.cache_limit:
            raise ValueError("cache_trim_to must not exceed cache_limit")
        if self.min_len > self.max_len:
            raise ValueError("min_len must not exceed max_len")
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown provider: {self.provider}")
        if self.strength is not None and self.strength not in STRENGTH_LEVELS:
            raise ValueError(f"Unknown strength level: {self.strength}")
        return self

    @property
    def effective_temperature(self) -> float:
        if self.strength:
            return STRENGTH_LEVELS[self.strength]
        return self.temperature

    @property
    def flush_delay(self) -> float:
        return self.flush_delay_ms / 1000.0

    @property
    def persist_delay(self) -> float:
        return self.persist_delay_ms / 1000.0

    @property
    def model_name(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    @property
    def base_url(self) -> str:
        return self.api_base_url or DEFAULT_BASE_URLS.get(self.provider, "")


def resolve_api_key(provider: str) -> str:
    env_name = API_KEY_ENV.get(provider)
    return os.getenv(env_name, "") if env_name else ""


def configured_providers() -> List[str]:
    return [name for name in PROVIDERS if os.getenv(API_KEY_ENV[name])]
