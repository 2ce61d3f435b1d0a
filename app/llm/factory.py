"""
Provider selection. Called once per process; the pipeline only sees LlmProvider.
"""

import structlog

from app.config import Settings
from app.llm.base import LlmProvider

logger = structlog.get_logger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "google", "stub")


def build_llm_provider(config: Settings) -> LlmProvider:
    name = config.LLM_PROVIDER.strip().lower()
    common = {
        "timeout_seconds": config.LLM_TIMEOUT_SECONDS,
        "max_tokens": config.LLM_MAX_TOKENS,
    }

    if name == "openai":
        from app.llm.openai_provider import OpenAiProvider
        provider = OpenAiProvider(
            api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL,
            max_retries=config.LLM_MAX_RETRIES, **common,
        )
    elif name == "anthropic":
        from app.llm.anthropic_provider import AnthropicProvider
        provider = AnthropicProvider(
            api_key=config.ANTHROPIC_API_KEY, model=config.ANTHROPIC_MODEL,
            max_retries=config.LLM_MAX_RETRIES, **common,
        )
    elif name == "google":
        from app.llm.google_provider import GoogleProvider
        provider = GoogleProvider(api_key=config.GOOGLE_API_KEY, model=config.GOOGLE_MODEL, **common)
    elif name == "stub":
        from app.llm.stub_provider import StubProvider
        provider = StubProvider(**common)
    else:
        raise ValueError(f"Unknown LLM_PROVIDER '{config.LLM_PROVIDER}'. Expected one of {SUPPORTED_PROVIDERS}")

    logger.info("llm_provider_selected", provider=provider.provider_name)
    return provider
