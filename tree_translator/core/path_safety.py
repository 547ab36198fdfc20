"""Validation of untrusted relative paths.

Every filesystem access driven by a client-supplied or scanned path goes
through :func:`resolve_safe_path`, which refuses anything that would land
outside the given root directory.
"""

import os
import posixpath
import re

_WINDOWS_ABSOLUTE = re.compile(r"^[a-zA-Z]:/")


class InvalidPathError(ValueError):
    """The relative path is empty, absolute or climbs above its root."""


class PathEscapeError(ValueError):
    """The resolved path is not inside the root directory."""


def normalize_relative_path(raw_path: str) -> str:
    """Return ``raw_path`` as a normalized, forward-slash relative path.

    Backslashes are accepted as separators. Raises :class:`InvalidPathError`
    for empty input, ``"."``, NUL bytes, absolute POSIX or drive-letter paths
    and anything that normalizes to a parent-directory reference.
    """
    if not isinstance(raw_path, str):
        raise InvalidPathError("Path must be a string")

    replaced = raw_path.replace("\\", "/").strip()

    if not replaced or replaced == "." or "\x00" in replaced:
        raise InvalidPathError("Invalid relative path")

    if replaced.startswith("/") or _WINDOWS_ABSOLUTE.match(replaced):
        raise InvalidPathError("Absolute paths are not allowed")

    normalized = posixpath.normpath(replaced)

    if normalized in ("", ".", "..") or normalized.startswith("../"):
        raise InvalidPathError("Path traversal is not allowed")

    return normalized


def resolve_safe_path(root_path: str, relative_path: str) -> str:
    """Resolve ``relative_path`` under ``root_path`` or raise.

    The result is an absolute path equal to the resolved root or strictly
    nested under it.
    """
    normalized = normalize_relative_path(relative_path)
    resolved_root = os.path.abspath(root_path)
    resolved = os.path.abspath(os.path.join(resolved_root, *normalized.split("/")))

    root_prefix = resolved_root if resolved_root.endswith(os.sep) else resolved_root + os.sep
    if resolved != resolved_root and not resolved.startswith(root_prefix):
        raise PathEscapeError("Resolved path escapes root directory")

    return resolved


def is_path_inside_directory(target_path: str, base_directory: str) -> bool:
    """True when ``target_path`` is ``base_directory`` or nested under it."""
    try:
        relative = os.path.relpath(os.path.abspath(target_path), os.path.abspath(base_directory))
    except ValueError:
        # Different drives on Windows
        return False
    return relative == "." or (relative != ".." and not relative.startswith(".." + os.sep) and not os.path.isabs(relative))
