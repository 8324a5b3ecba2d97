# tasks/ai_engine/cost.py

import logging
from typing import Optional

from .catalog import CONTEXT_TIER_THRESHOLD, ModelPricing, TokenPrice, get_model

logger = logging.getLogger(__name__)

INPUT = "input"
OUTPUT = "output"


def _applicable_price(pricing: ModelPricing, component: str, context_tokens: int) -> Optional[TokenPrice]:
    """
    Pick the pricing tier for one side of the call.

    Context tiers win when the model defines all four of them. The
    output-mode split cannot be observed from the response, so output is
    billed at the "with thinking" rate whenever that tier exists.
    """
    if pricing.has_context_tiers:
        low_tier = context_tokens <= CONTEXT_TIER_THRESHOLD
        if component == INPUT:
            return pricing.input_standard_context_lt_128k if low_tier else pricing.input_standard_context_gt_128k
        return pricing.output_standard_context_lt_128k if low_tier else pricing.output_standard_context_gt_128k

    if component == OUTPUT:
        mode_price = pricing.output_with_thinking or pricing.output_no_thinking
        if mode_price is not None:
            return mode_price
        return pricing.output

    return pricing.input


def calculate_cost(model_id: str, input_tokens: int, output_tokens: int) -> float:
    """
    USD cost of one AI operation, rounded to 6 decimal places.

    Never raises: an unknown model costs 0 and a missing tier contributes 0,
    both with a warning in the log.
    """
    model = get_model(model_id)
    if model is None:
        logger.warning(f"Pricing info not found for model '{model_id}'. Cost will be 0.")
        return 0.0

    input_tokens = max(0, int(input_tokens or 0))
    output_tokens = max(0, int(output_tokens or 0))
    context_tokens = input_tokens + output_tokens

    total = 0.0
    for component, tokens in ((INPUT, input_tokens), (OUTPUT, output_tokens)):
        if tokens <= 0:
            continue
        price = _applicable_price(model.pricing, component, context_tokens)
        if price is None:
            logger.warning(
                f"{component.capitalize()} pricing tier not found for model '{model_id}'. "
                f"{component.capitalize()} token cost will be 0."
            )
            continue
        total += (tokens / price.per_tokens) * price.usd

    return round(total, 6)
