import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Iterable, List
from urllib.parse import urlparse

from tree_translator.core.config import CLONE_DIR_NAME
from tree_translator.core.path_safety import InvalidPathError, normalize_relative_path, resolve_safe_path
from tree_translator.core.upload_filter import UploadEntry, should_ignore_upload_path
from tree_translator.exceptions import UserInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadLimits:
    max_file_count: int
    max_single_file_bytes: int
    max_total_bytes: int


def stage_uploaded_files(input_root: str, entries: Iterable[UploadEntry], limits: UploadLimits) -> List[str]:
    """Write uploaded files under ``input_root``; returns the staged relative paths."""
    entries = list(entries)
    if not entries:
        raise UserInputError("No files were uploaded")

    staged: List[UploadEntry] = []
    for entry in entries:
        try:
            relative_path = normalize_relative_path(entry.path)
        except InvalidPathError as e:
            raise UserInputError(f"Invalid upload path {entry.path!r}: {e}") from e

        if should_ignore_upload_path(relative_path):
            continue
        staged.append(UploadEntry(path=relative_path, content=entry.content))

    if not staged:
        raise UserInputError("No eligible files were uploaded after filtering ignored directories")

    if len(staged) > limits.max_file_count:
        raise UserInputError(f"Too many files. Maximum {limits.max_file_count} files per job")

    total_bytes = 0
    for entry in staged:
        if entry.size > limits.max_single_file_bytes:
            raise UserInputError(f"File too large: {entry.path}")
        total_bytes += entry.size
        if total_bytes > limits.max_total_bytes:
            raise UserInputError("Uploaded folder is too large")

    for entry in staged:
        absolute_path = resolve_safe_path(input_root, entry.path)
        os.makedirs(os.path.dirname(absolute_path), exist_ok=True)
        with open(absolute_path, "wb") as f:
            f.write(entry.content)

    logger.info(f"Staged {len(staged)} uploaded files into {input_root}")
    return [entry.path for entry in staged]


def validate_public_github_url(repo_url: str) -> str:
    """Accept ``https://github.com/<owner>/<repo>`` only; return its clone URL."""
    try:
        parsed = urlparse(repo_url.strip())
    except (AttributeError, ValueError) as e:
        raise UserInputError("Invalid GitHub repository URL") from e

    if parsed.scheme != "https" or parsed.hostname != "github.com":
        raise UserInputError("Only public https://github.com repositories are supported")

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) != 2:
        raise UserInputError("Repository URL must be in /owner/repo format")

    owner, repo = parts
    if repo.lower().endswith(".git"):
        repo = repo[:-4]
    if not repo:
        raise UserInputError("Repository URL must be in /owner/repo format")

    return f"https://github.com/{owner}/{repo}.git"


async def clone_github_repo(clone_url: str, input_root: str, timeout: float) -> str:
    """Shallow-clone ``clone_url`` into ``<input_root>/repo`` and return that path."""
    target = os.path.join(input_root, CLONE_DIR_NAME)
    try:
        process = await asyncio.create_subprocess_exec(
            "git", "clone", "--depth=1", clone_url, target,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
    except FileNotFoundError as e:
        raise UserInputError("git is not installed on the server") from e
    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise UserInputError(f"Cloning {clone_url} timed out after {timeout:g}s")

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        logger.warning(f"git clone {clone_url} failed: {detail}")
        raise UserInputError(f"Failed to clone repository: {detail or 'git exited with an error'}")

    return target
