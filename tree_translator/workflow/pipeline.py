"""Per-file translation of a staged project tree.

The pipeline walks the input tree once, translates eligible text files and
copies everything else verbatim. A failing file never stops the batch: its
original bytes are copied and the failure is recorded. Cancellation stops
the run between files, and aborts an in-flight translate call.
"""

import asyncio
import inspect
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from tree_translator.core.file_scan import is_probably_text, list_project_files, should_translate_file
from tree_translator.core.path_safety import resolve_safe_path
from tree_translator.exceptions import describe_error
from tree_translator.models.job import FileError, SourceType
from tree_translator.translator.types import TranslateContext
from tree_translator.workflow.cancellation import CancellationToken, PipelineCancelledError

logger = logging.getLogger(__name__)


@dataclass
class PipelineProgress:
    total_files: int
    processed_files: int
    failed_files: int
    current_file: str
    # Errors so far, so consumers can keep len(errors) == failed_files
    errors: List[FileError] = field(default_factory=list)


@dataclass
class PipelineResult:
    total_files: int
    processed_files: int
    failed_files: int
    errors: List[FileError] = field(default_factory=list)


TranslateFn = Callable[[str, TranslateContext], Awaitable[str]]
ProgressFn = Callable[[PipelineProgress], Union[None, Awaitable[None]]]


async def _run_blocking(func, *args):
    """Run blocking filesystem work in a thread to keep the event loop free."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)


def _decode_text(data: bytes) -> str:
    # Undecodable bytes become U+FFFD; the file is still translated
    return data.decode("utf-8", errors="replace")


async def run_translation_pipeline(
    input_root: str,
    output_root: str,
    allowed_extensions: List[str],
    max_file_size_bytes: int,
    translate: TranslateFn,
    on_progress: Optional[ProgressFn] = None,
    cancel_token: Optional[CancellationToken] = None,
    source_type: SourceType = SourceType.LOCAL_UPLOAD,
    target_language: str = "Traditional Chinese (zh-TW)",
    model: Optional[str] = None,
    log: Optional[logging.Logger] = None,
) -> PipelineResult:
    """Translate ``input_root`` into ``output_root``.

    Returns the aggregate counts and the ordered list of per-file errors.
    Raises :class:`PipelineCancelledError` if ``cancel_token`` fires before
    the last file is done.
    """
    log = log or logger
    token = cancel_token or CancellationToken()

    await _run_blocking(lambda: os.makedirs(output_root, exist_ok=True))

    # Enumerated once: files added later are not picked up
    files = await _run_blocking(list_project_files, input_root)
    total_files = len(files)
    errors: List[FileError] = []
    processed_files = 0
    failed_files = 0

    log.info(f"Translating {total_files} files from {input_root}")

    for relative_path in files:
        token.raise_if_cancelled()

        source_path = resolve_safe_path(input_root, relative_path)
        target_path = resolve_safe_path(output_root, relative_path)

        await _run_blocking(lambda: os.makedirs(os.path.dirname(target_path), exist_ok=True))

        try:
            file_bytes = await _run_blocking(_read_bytes, source_path)
            if should_translate_file(relative_path, allowed_extensions, max_file_size_bytes, len(file_bytes)) \
                    and is_probably_text(file_bytes):
                context = TranslateContext(
                    relative_path=relative_path,
                    source_type=source_type,
                    target_language=target_language,
                    model=model,
                    cancel_token=token,
                )
                translated = await token.run(translate(_decode_text(file_bytes), context))
                await _run_blocking(_write_bytes, target_path, translated.encode("utf-8"))
            else:
                await _run_blocking(shutil.copyfile, source_path, target_path)
        except PipelineCancelledError:
            raise
        except asyncio.CancelledError:
            if token.cancelled:
                raise PipelineCancelledError() from None
            raise
        except Exception as e:
            if token.cancelled:
                raise PipelineCancelledError() from e

            failed_files += 1
            message = describe_error(e)
            errors.append(FileError(relative_path=relative_path, message=message))
            log.warning(f"Failed to translate {relative_path}: {message}")

            try:
                await _run_blocking(shutil.copyfile, source_path, target_path)
            except OSError as copy_error:
                # The source vanished after the scan; nothing left to copy
                log.warning(f"Could not copy original of {relative_path}: {copy_error}")

        processed_files += 1
        token.raise_if_cancelled()

        if on_progress is not None:
            outcome = on_progress(PipelineProgress(
                total_files=total_files,
                processed_files=processed_files,
                failed_files=failed_files,
                current_file=relative_path,
                errors=list(errors),
            ))
            if inspect.isawaitable(outcome):
                await outcome

    log.info(f"Finished {processed_files}/{total_files} files, {failed_files} failed")

    return PipelineResult(
        total_files=total_files,
        processed_files=processed_files,
        failed_files=failed_files,
        errors=errors,
    )
