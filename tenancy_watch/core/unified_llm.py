"""Extraction model selection.

Picks a primary model and an independently sourced reviewer model for
high-value arbitration from whichever providers have credentials.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Union

from tenancy_watch.core.config import LLMSettings, settings
from tenancy_watch.core.exceptions import ConfigurationError
from tenancy_watch.core.gemini_client import GeminiClient
from tenancy_watch.core.openrouter_client import OpenRouterClient
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    OPENROUTER = "openrouter"


class ExtractionModel(Protocol):
    name: str

    async def generate_content(self, contents, system_instruction=None, generation_config=None) -> str:
        ...


@dataclass
class ExtractionClients:
    primary: ExtractionModel
    reviewer: Optional[ExtractionModel]


def create_llm_client(
    provider: Union[str, LLMProvider],
    model: str,
    llm_settings: Optional[LLMSettings] = None,
) -> ExtractionModel:
    """Build a client for ``provider`` using credentials from settings."""
    llm_settings = llm_settings or settings.llm
    provider = LLMProvider(provider)

    if provider == LLMProvider.GEMINI:
        if not llm_settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        return GeminiClient(
            api_key=llm_settings.gemini_api_key,
            model=model,
            timeout=llm_settings.timeout_seconds,
            max_retries=llm_settings.max_retries,
        )

    if not llm_settings.openrouter_api_key:
        raise ConfigurationError("OPENROUTER_API_KEY is not configured")
    return OpenRouterClient(
        api_key=llm_settings.openrouter_api_key,
        model=model,
        base_url=llm_settings.openrouter_api_url,
        timeout=llm_settings.timeout_seconds,
        max_retries=llm_settings.max_retries,
    )


def create_extraction_clients(llm_settings: Optional[LLMSettings] = None) -> ExtractionClients:
    """Primary and reviewer clients for document extraction.

    With both providers configured the reviewer comes from the other
    provider; with one, the reviewer is that provider's stronger model.

    Raises:
        ConfigurationError: If no provider has credentials
    """
    llm_settings = llm_settings or settings.llm
    has_gemini = bool(llm_settings.gemini_api_key)
    has_openrouter = bool(llm_settings.openrouter_api_key)

    if has_gemini and has_openrouter:
        primary = create_llm_client(LLMProvider.GEMINI, llm_settings.gemini_model, llm_settings)
        reviewer = create_llm_client(LLMProvider.OPENROUTER, llm_settings.openrouter_review_model, llm_settings)
    elif has_gemini:
        primary = create_llm_client(LLMProvider.GEMINI, llm_settings.gemini_model, llm_settings)
        reviewer = create_llm_client(LLMProvider.GEMINI, llm_settings.gemini_review_model, llm_settings)
    elif has_openrouter:
        primary = create_llm_client(LLMProvider.OPENROUTER, llm_settings.openrouter_model, llm_settings)
        reviewer = create_llm_client(LLMProvider.OPENROUTER, llm_settings.openrouter_review_model, llm_settings)
    else:
        raise ConfigurationError("No AI API key configured")

    LOGGER.info(f"Extraction models: primary={primary.name}, reviewer={reviewer.name}")
    return ExtractionClients(primary=primary, reviewer=reviewer)
