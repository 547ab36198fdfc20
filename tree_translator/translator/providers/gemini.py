from typing import Callable, Optional

from google import genai

from tree_translator.translator.types import TranslateContext, TranslationError

PROMPT = "Translate the following content to {target_language}. Preserve formatting:\n\n{text}"


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key_resolver: Callable[[], Optional[str]], default_model: str):
        self._resolve_api_key = api_key_resolver
        self.default_model = default_model

    def _client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    async def translate(self, text: str, context: TranslateContext) -> str:
        api_key = self._resolve_api_key()
        if not api_key:
            raise TranslationError("GEMINI_API_KEY is not configured")

        client = self._client(api_key)
        try:
            response = await client.aio.models.generate_content(
                model=context.model or self.default_model,
                contents=PROMPT.format(target_language=context.target_language, text=text),
            )
        finally:
            await client.aio.aclose()

        translated = response.text
        if not isinstance(translated, str) or not translated:
            raise TranslationError("Gemini translation returned empty content")

        return translated
