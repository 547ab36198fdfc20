import os
import posixpath
from typing import Iterable, List, Optional

from tree_translator.core.config import (
    DEFAULT_IGNORED_DIRECTORIES,
    SUSPICIOUS_BYTE_RATIO,
    TEXT_SAMPLE_BYTES,
)


def list_project_files(root_path: str, ignored_directories: Optional[Iterable[str]] = None) -> List[str]:
    """List every regular file under ``root_path`` as a sorted relative path.

    Directories named in the built-in ignore set or in ``ignored_directories``
    are pruned at any depth. Symbolic links are skipped, never followed.
    Paths use forward slashes whatever the platform.
    """
    ignore_set = set(DEFAULT_IGNORED_DIRECTORIES)
    if ignored_directories:
        ignore_set.update(ignored_directories)

    collected: List[str] = []

    def on_error(error: OSError) -> None:
        # An unreadable root is fatal for the caller; nested read errors are too.
        raise error

    for current, dirs, files in os.walk(root_path, onerror=on_error, followlinks=False):
        relative_base = os.path.relpath(current, root_path)
        relative_base = "" if relative_base == "." else relative_base.replace(os.sep, "/")

        dirs[:] = [
            d for d in dirs
            if d not in ignore_set and not os.path.islink(os.path.join(current, d))
        ]

        for name in files:
            absolute = os.path.join(current, name)
            if os.path.islink(absolute) or not os.path.isfile(absolute):
                continue
            collected.append(posixpath.join(relative_base, name) if relative_base else name)

    return sorted(collected)


def file_extension(relative_path: str) -> str:
    return posixpath.splitext(relative_path.replace("\\", "/"))[1].lower()


def should_translate_file(
    relative_path: str,
    allowed_extensions: Iterable[str],
    max_file_size_bytes: int,
    file_size_bytes: int,
) -> bool:
    """True iff the extension is allow-listed and the file is within the size ceiling."""
    allowed = {extension.lower() for extension in allowed_extensions}
    if file_extension(relative_path) not in allowed:
        return False
    return file_size_bytes <= max_file_size_bytes


def is_probably_text(buffer: bytes) -> bool:
    """Heuristic binary sniffing over the first 8000 bytes.

    A byte is suspicious when it is NUL or a control character other than
    tab, newline, vertical tab, form feed and carriage return. The buffer
    is text when fewer than 3% of the sampled bytes are suspicious.
    """
    if not buffer:
        return True

    sample = buffer[:TEXT_SAMPLE_BYTES]
    suspicious = sum(1 for byte in sample if byte < 9 or 13 < byte < 32)

    return suspicious / len(sample) < SUSPICIOUS_BYTE_RATIO
