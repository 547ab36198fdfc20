from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from tree_translator.models.job import SourceType

if TYPE_CHECKING:
    from tree_translator.workflow.cancellation import CancellationToken


class TranslationError(Exception):
    """A provider could not translate one piece of text."""


@dataclass
class TranslateContext:
    relative_path: str
    source_type: SourceType
    target_language: str
    model: Optional[str] = None
    cancel_token: Optional["CancellationToken"] = None


class TranslatorProvider(Protocol):
    name: str

    async def translate(self, text: str, context: TranslateContext) -> str:
        ...


TranslatorProviderMap = Dict[str, TranslatorProvider]
