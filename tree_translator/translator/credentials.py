from dataclasses import dataclass
from threading import Lock
from typing import Optional

from tree_translator.config import Settings

_UNSET = object()


def _normalize_api_key(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


@dataclass(frozen=True)
class CredentialSnapshot:
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None


class RuntimeCredentials:
    """API keys entered at runtime; they take precedence over the environment."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._openai_api_key: Optional[str] = None
        self._gemini_api_key: Optional[str] = None
        self._lock = Lock()

    def snapshot(self) -> CredentialSnapshot:
        with self._lock:
            return CredentialSnapshot(self._openai_api_key, self._gemini_api_key)

    def update(self, openai_api_key=_UNSET, gemini_api_key=_UNSET) -> CredentialSnapshot:
        """Replace only the keys that were passed; a blank value clears the key."""
        with self._lock:
            if openai_api_key is not _UNSET:
                self._openai_api_key = _normalize_api_key(openai_api_key)
            if gemini_api_key is not _UNSET:
                self._gemini_api_key = _normalize_api_key(gemini_api_key)
        return self.snapshot()

    def resolve_openai_api_key(self) -> Optional[str]:
        with self._lock:
            return self._openai_api_key or _normalize_api_key(self._settings.OPENAI_API_KEY)

    def resolve_gemini_api_key(self) -> Optional[str]:
        with self._lock:
            return self._gemini_api_key or _normalize_api_key(self._settings.GEMINI_API_KEY)
