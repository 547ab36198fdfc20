from typing import Callable, Optional

from openai import AsyncOpenAI

from tree_translator.translator.types import TranslateContext, TranslationError

SYSTEM_PROMPT = (
    "You are a professional translator. Translate content to {target_language}. "
    "Keep original structure, formatting, and code blocks untouched whenever possible."
)


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key_resolver: Callable[[], Optional[str]], default_model: str):
        self._resolve_api_key = api_key_resolver
        self.default_model = default_model

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    async def translate(self, text: str, context: TranslateContext) -> str:
        api_key = self._resolve_api_key()
        if not api_key:
            raise TranslationError("OPENAI_API_KEY is not configured")

        client = self._client(api_key)
        try:
            response = await client.chat.completions.create(
                model=context.model or self.default_model,
                messages=[{
                    "role": "system",
                    "content": SYSTEM_PROMPT.format(target_language=context.target_language),
                }, {
                    "role": "user",
                    "content": text,
                }],
            )
        finally:
            await client.close()

        content = response.choices[0].message.content if response.choices else None
        if not isinstance(content, str) or not content:
            raise TranslationError("OpenAI translation returned empty content")

        return content
