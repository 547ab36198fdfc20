import logging
from typing import Optional

import httpx

from tree_translator.translator.types import TranslateContext, TranslationError

logger = logging.getLogger(__name__)


class LocalProvider:
    """Translator backed by a self-hosted HTTP endpoint.

    Without an endpoint it only tags the text with the target language, which
    makes it usable for dry runs and tests.
    """
    name = "local"

    def __init__(self, endpoint: Optional[str] = None, timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def translate(self, text: str, context: TranslateContext) -> str:
        if not self.endpoint:
            return f"[{context.target_language}] {text}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.endpoint,
                json={"text": text, "targetLanguage": context.target_language},
            )

        if response.is_error:
            raise TranslationError(f"Local translation failed: {response.text}")

        try:
            data = response.json()
        except ValueError:
            data = None

        translated = data.get("translatedText") if isinstance(data, dict) else None
        if not isinstance(translated, str):
            raise TranslationError("Local translator returned invalid payload")

        return translated
