from .gemini import GeminiProvider
from .local import LocalProvider
from .openai import OpenAIProvider

__all__ = ['GeminiProvider', 'LocalProvider', 'OpenAIProvider']
