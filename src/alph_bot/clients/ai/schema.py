"""Structured output schema shared by every forecaster provider.

``PROBABILITY_ESTIMATE_SCHEMA`` is the JSON Schema handed to the Anthropic
tool definition and embedded in the CLI prompt. ``parse_probability_estimate``
validates a decoded answer against the same contract.
"""

import json
from typing import Any

from alph_bot.clients.ai.exceptions import ForecastValidationError
from alph_bot.core.models import Confidence, ProbabilityEstimate

PROBABILITY_ESTIMATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "yesProbability": {
            "type": "number",
            "minimum": 0,
            "maximum": 1,
            "description": "Probability that the YES outcome occurs, between 0 and 1",
        },
        "confidence": {
            "type": "string",
            "enum": [c.value for c in Confidence],
            "description": "Your confidence in this estimate",
        },
        "reasoning": {
            "type": "string",
            "description": "Brief explanation of your reasoning",
        },
    },
    "required": ["yesProbability", "confidence", "reasoning"],
    "additionalProperties": False,
}

PROBABILITY_ESTIMATE_SCHEMA_JSON = json.dumps(PROBABILITY_ESTIMATE_SCHEMA, indent=2)


def parse_probability_estimate(raw: Any) -> ProbabilityEstimate:
    """Validate a decoded provider answer and build a ``ProbabilityEstimate``.

    Args:
        raw: Decoded JSON object from the provider.

    Returns:
        The estimate with its probability clamped to [0, 1].

    Raises:
        ForecastValidationError: If a field is missing or has the wrong type,
            the probability is outside [0, 1], or the confidence tier is unknown.

    """
    if not isinstance(raw, dict):
        msg = f"Expected a JSON object, got {type(raw).__name__}"
        raise ForecastValidationError(msg)

    missing = [key for key in PROBABILITY_ESTIMATE_SCHEMA["required"] if key not in raw]
    if missing:
        msg = f"Missing required field(s): {', '.join(missing)}"
        raise ForecastValidationError(msg)

    probability = raw["yesProbability"]
    if isinstance(probability, bool) or not isinstance(probability, (int, float)):
        msg = f"yesProbability must be a number, got {probability!r}"
        raise ForecastValidationError(msg)
    if not 0 <= probability <= 1:
        msg = f"yesProbability must be between 0 and 1, got {probability}"
        raise ForecastValidationError(msg)

    try:
        confidence = Confidence(raw["confidence"])
    except ValueError as exc:
        msg = f"Unknown confidence tier: {raw['confidence']!r}"
        raise ForecastValidationError(msg) from exc

    reasoning = raw["reasoning"]
    if not isinstance(reasoning, str):
        msg = f"reasoning must be a string, got {type(reasoning).__name__}"
        raise ForecastValidationError(msg)

    return ProbabilityEstimate.clamped(float(probability), confidence, reasoning)
