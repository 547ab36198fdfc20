"""Translator providers and the registry that hands them to jobs."""

from typing import List, Optional

from tree_translator.config import Settings, get_settings
from tree_translator.exceptions import UserInputError
from tree_translator.translator.credentials import RuntimeCredentials
from tree_translator.translator.providers import GeminiProvider, LocalProvider, OpenAIProvider
from tree_translator.translator.status import (
    SUPPORTED_TRANSLATORS,
    get_default_model,
    get_provider_status,
    missing_provider_hint,
)
from tree_translator.translator.types import (
    TranslateContext,
    TranslationError,
    TranslatorProvider,
    TranslatorProviderMap,
)


class TranslatorRegistry:
    """Looks providers up by name and checks they are usable."""

    def __init__(self, providers: TranslatorProviderMap, credentials: RuntimeCredentials, settings: Settings):
        self._providers = dict(providers)
        self.credentials = credentials
        self.settings = settings

    def get(self, provider_name: str) -> TranslatorProvider:
        provider = self._providers.get(provider_name)
        if provider is None:
            raise UserInputError(f"Unsupported translator provider: {provider_name}")
        return provider

    def list(self) -> List[str]:
        return list(self._providers)

    def status(self):
        return get_provider_status(self.credentials)

    def assert_configured(self, provider_name: str) -> None:
        """Reject a provider that is unknown or has no API key."""
        self.get(provider_name)
        if provider_name in SUPPORTED_TRANSLATORS and not self.status().get(provider_name, False):
            hint = missing_provider_hint(provider_name)
            raise UserInputError(f"{provider_name.upper()}_API_KEY is not configured. {hint}")

    def resolve_model(self, provider_name: str, raw_model: Optional[str]) -> str:
        model = raw_model.strip() if isinstance(raw_model, str) else ""
        if model:
            return model
        if provider_name in SUPPORTED_TRANSLATORS:
            return get_default_model(provider_name, self.settings)
        return get_default_model("openai", self.settings)


def create_translator_registry(settings: Optional[Settings] = None,
                               credentials: Optional[RuntimeCredentials] = None) -> TranslatorRegistry:
    """Build the registry with the built-in providers."""
    settings = settings or get_settings()
    credentials = credentials or RuntimeCredentials(settings)
    providers: TranslatorProviderMap = {
        "openai": OpenAIProvider(credentials.resolve_openai_api_key, settings.OPENAI_MODEL),
        "gemini": GeminiProvider(credentials.resolve_gemini_api_key, settings.GEMINI_MODEL),
        "local": LocalProvider(settings.LOCAL_TRANSLATOR_URL),
    }
    return TranslatorRegistry(providers, credentials, settings)


__all__ = [
    'RuntimeCredentials',
    'TranslateContext',
    'TranslationError',
    'TranslatorProvider',
    'TranslatorRegistry',
    'create_translator_registry',
    'get_provider_status',
    'missing_provider_hint',
]
