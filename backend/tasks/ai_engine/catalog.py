# tasks/ai_engine/catalog.py
"""
Model Catalog
=============

Static table of the AI models the prioritization pipeline can call, with
their per-token pricing. Entries are immutable and built once at import time.

Provider dispatch is a closed set (``Provider``). Each model id resolves to a
provider through the catalog first and then through a prefix table, so an
unknown id such as ``"unknown/foo"`` resolves to ``Provider.OTHER`` and the
orchestrator skips AI for it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


class Provider(str, enum.Enum):
    GOOGLE = "Google"
    XAI = "XAI"
    OTHER = "Other"


# Context window threshold for tiered pricing.
CONTEXT_TIER_THRESHOLD = 128_000


@dataclass(frozen=True)
class TokenPrice:
    usd: float
    per_tokens: int = 1_000_000
    notes: Optional[str] = None


@dataclass(frozen=True)
class ModelPricing:
    """
    Pricing table for one model. Three shapes are supported:

    - flat: ``input`` / ``output``
    - context tiers: ``*_standard_context_lt_128k`` / ``*_standard_context_gt_128k``
    - output-mode tiers: ``output_no_thinking`` / ``output_with_thinking``
    """

    input: Optional[TokenPrice] = None
    output: Optional[TokenPrice] = None
    input_standard_context_lt_128k: Optional[TokenPrice] = None
    output_standard_context_lt_128k: Optional[TokenPrice] = None
    input_standard_context_gt_128k: Optional[TokenPrice] = None
    output_standard_context_gt_128k: Optional[TokenPrice] = None
    output_no_thinking: Optional[TokenPrice] = None
    output_with_thinking: Optional[TokenPrice] = None

    @property
    def has_context_tiers(self) -> bool:
        return all(
            (
                self.input_standard_context_lt_128k,
                self.output_standard_context_lt_128k,
                self.input_standard_context_gt_128k,
                self.output_standard_context_gt_128k,
            )
        )


@dataclass(frozen=True)
class AIModelInfo:
    id: str
    name: str
    provider: Provider
    pricing: ModelPricing
    pricing_summary: Tuple[str, ...] = field(default_factory=tuple)
    notes: str = ""
    is_default: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider.value,
            "pricing_summary": list(self.pricing_summary),
            "notes": self.notes,
            "is_default": self.is_default,
        }


_PER_MILLION = 1_000_000

SUPPORTED_AI_MODELS: Tuple[AIModelInfo, ...] = (
    AIModelInfo(
        id="googleai/gemini-1.5-flash-latest",
        name="Gemini 1.5 Flash (Google - Default)",
        provider=Provider.GOOGLE,
        is_default=True,
        pricing=ModelPricing(
            input_standard_context_lt_128k=TokenPrice(0.35, _PER_MILLION),
            output_standard_context_lt_128k=TokenPrice(0.70, _PER_MILLION),
            input_standard_context_gt_128k=TokenPrice(0.70, _PER_MILLION),
            output_standard_context_gt_128k=TokenPrice(1.40, _PER_MILLION),
        ),
        pricing_summary=(
            "Input (<128K tokens): $0.35 / 1M tokens",
            "Output (<128K tokens): $0.70 / 1M tokens",
            "Input (>128K tokens): $0.70 / 1M tokens",
            "Output (>128K tokens): $1.40 / 1M tokens",
        ),
        notes="Fast & cost-effective. Free tier may apply.",
    ),
    AIModelInfo(
        id="googleai/gemini-1.5-pro-latest",
        name="Gemini 1.5 Pro (Google)",
        provider=Provider.GOOGLE,
        pricing=ModelPricing(
            input_standard_context_lt_128k=TokenPrice(3.50, _PER_MILLION),
            output_standard_context_lt_128k=TokenPrice(10.50, _PER_MILLION),
            input_standard_context_gt_128k=TokenPrice(7.00, _PER_MILLION),
            output_standard_context_gt_128k=TokenPrice(21.00, _PER_MILLION),
        ),
        pricing_summary=(
            "Input (<128K tokens): $3.50 / 1M tokens",
            "Output (<128K tokens): $10.50 / 1M tokens",
            "Input (>128K tokens): $7.00 / 1M tokens",
            "Output (>128K tokens): $21.00 / 1M tokens",
        ),
        notes="Most capable model. Free tier may apply.",
    ),
    AIModelInfo(
        id="googleai/gemini-2.5-flash",
        name="Gemini 2.5 Flash (Google)",
        provider=Provider.GOOGLE,
        pricing=ModelPricing(
            input=TokenPrice(0.15, _PER_MILLION),
            output_no_thinking=TokenPrice(0.60, _PER_MILLION),
            output_with_thinking=TokenPrice(3.50, _PER_MILLION),
        ),
        pricing_summary=(
            "Input: $0.15 / 1M tokens",
            "Output (no thinking): $0.60 / 1M tokens",
            "Output (with thinking): $3.50 / 1M tokens",
        ),
        notes="Hybrid reasoning model. Output is billed at the thinking rate.",
    ),
    AIModelInfo(
        id="xai/grok-1",
        name="Grok-1 (XAI)",
        provider=Provider.XAI,
        pricing=ModelPricing(
            input=TokenPrice(1.00, _PER_MILLION, notes="Illustrative placeholder"),
            output=TokenPrice(1.00, _PER_MILLION, notes="Illustrative placeholder"),
        ),
        pricing_summary=(
            "Input: (Check XAI for current rates - placeholder: ~$1/1M tokens)",
            "Output: (Check XAI for current rates - placeholder: ~$1/1M tokens)",
        ),
        notes="Requires an XAI API key. Pricing is illustrative.",
    ),
)

DEFAULT_AI_MODEL_ID: str = next(
    (m.id for m in SUPPORTED_AI_MODELS if m.is_default), SUPPORTED_AI_MODELS[0].id
)

_MODELS_BY_ID: Dict[str, AIModelInfo] = {m.id: m for m in SUPPORTED_AI_MODELS}

_PROVIDER_PREFIXES: Tuple[Tuple[str, Provider], ...] = (
    ("googleai/", Provider.GOOGLE),
    ("xai/", Provider.XAI),
)

# OpenAI-compatible endpoints used by ExternalAIScorer
PROVIDER_BASE_URLS: Dict[Provider, str] = {
    Provider.GOOGLE: "https://generativelanguage.googleapis.com/v1beta/openai/",
    Provider.XAI: "https://api.x.ai/v1",
}

# Environment-backed settings holding each provider's key, with the
# diagnostic label recorded when that key is used.
PROVIDER_KEY_SETTINGS: Dict[Provider, Tuple[str, str]] = {
    Provider.GOOGLE: ("GOOGLE_API_KEY", "env_google"),
    Provider.XAI: ("XAI_API_KEY", "env_xai"),
}


def get_model(model_id: str) -> Optional[AIModelInfo]:
    return _MODELS_BY_ID.get(model_id)


def resolve_provider(model_id: Optional[str]) -> Provider:
    """Map a model id onto the closed provider set."""
    if not model_id:
        return Provider.OTHER
    model = _MODELS_BY_ID.get(model_id)
    if model is not None:
        return model.provider
    for prefix, provider in _PROVIDER_PREFIXES:
        if model_id.startswith(prefix):
            return provider
    return Provider.OTHER


def provider_model_name(model_id: str) -> str:
    """Strip the routing prefix: 'googleai/gemini-1.5-pro-latest' -> 'gemini-1.5-pro-latest'."""
    for prefix, _provider in _PROVIDER_PREFIXES:
        if model_id.startswith(prefix):
            return model_id[len(prefix):]
    return model_id
