from typing import Dict, Optional

from tree_translator.config import Settings
from tree_translator.translator.credentials import RuntimeCredentials

SUPPORTED_TRANSLATORS = ("openai", "gemini", "local")
LOCAL_MODEL = "local"


def get_provider_status(credentials: RuntimeCredentials) -> Dict[str, bool]:
    """Which providers can run right now."""
    return {
        "openai": bool(credentials.resolve_openai_api_key()),
        "gemini": bool(credentials.resolve_gemini_api_key()),
        "local": True,
    }


def missing_provider_hint(provider: str) -> Optional[str]:
    if provider == "openai":
        return "Enter an OpenAI API key in the UI or set OPENAI_API_KEY in .env"
    if provider == "gemini":
        return "Enter a Gemini API key in the UI or set GEMINI_API_KEY in .env"
    return None


def get_default_model(provider: str, settings: Settings) -> str:
    if provider == "gemini":
        return settings.GEMINI_MODEL
    if provider == "local":
        return LOCAL_MODEL
    return settings.OPENAI_MODEL
