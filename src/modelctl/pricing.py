"""Known model metadata used to enrich discovered models.

When ``model discover --register`` adds models, context windows and prices
are filled in from these tables where the model is known. Unknown models are
registered with zeros (unknown).

Prices are in USD per million tokens (MTok).
"""

from __future__ import annotations

from modelctl.config.models import ModelConfig

# Anthropic Claude models
# Source: https://docs.anthropic.com/en/docs/about-claude/models
ANTHROPIC_MODELS = {
    "claude-opus-4-20250514": {
        "context_window": 200_000,
        "input": 15.00,  # $15 per MTok
        "output": 75.00,  # $75 per MTok
    },
    "claude-sonnet-4-20250514": {
        "context_window": 200_000,
        "input": 3.00,
        "output": 15.00,
    },
    "claude-3-7-sonnet-20250219": {
        "context_window": 200_000,
        "input": 3.00,
        "output": 15.00,
    },
    "claude-3-5-sonnet-20241022": {
        "context_window": 200_000,
        "input": 3.00,
        "output": 15.00,
    },
    "claude-3-5-haiku-20241022": {
        "context_window": 200_000,
        "input": 0.80,
        "output": 4.00,
    },
    "claude-3-opus-20240229": {
        "context_window": 200_000,
        "input": 15.00,
        "output": 75.00,
    },
    "claude-3-haiku-20240307": {
        "context_window": 200_000,
        "input": 0.25,
        "output": 1.25,
    },
}

# Aliases understood by the Claude Code CLI
CLAUDE_CODE_MODELS = {
    "haiku": ANTHROPIC_MODELS["claude-3-5-haiku-20241022"],
    "sonnet": ANTHROPIC_MODELS["claude-sonnet-4-20250514"],
    "opus": ANTHROPIC_MODELS["claude-opus-4-20250514"],
}

OPENAI_MODELS = {
    "gpt-4o": {
        "context_window": 128_000,
        "input": 2.50,
        "output": 10.00,
    },
    "gpt-4o-mini": {
        "context_window": 128_000,
        "input": 0.15,
        "output": 0.60,
    },
    "o1": {
        "context_window": 200_000,
        "input": 15.00,
        "output": 60.00,
    },
}

# Ollama models are free (local inference); context depends on the model file
OLLAMA_MODELS: dict[str, dict[str, float]] = {}

_TABLES = {
    "anthropic": ANTHROPIC_MODELS,
    "claude-code": CLAUDE_CODE_MODELS,
    "openai": OPENAI_MODELS,
    "ollama": OLLAMA_MODELS,
}


def get_model_metadata(provider_type: str, model_name: str) -> ModelConfig:
    """Look up metadata for a model.

    Args:
        provider_type: Provider type the model belongs to.
        model_name: The model identifier (e.g., "claude-3-5-haiku-20241022")

    Returns:
        ModelConfig with known values, or all zeros if the model is unknown.

    Example:
        >>> meta = get_model_metadata("anthropic", "claude-3-5-haiku-20241022")
        >>> meta.context_window
        200000
    """
    entry = _TABLES.get(provider_type, {}).get(model_name)
    if entry is None:
        return ModelConfig()
    return ModelConfig(
        context_window=int(entry.get("context_window", 0)),
        input_price_per_mtok=entry.get("input", 0.0),
        output_price_per_mtok=entry.get("output", 0.0),
    )
