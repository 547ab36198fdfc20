import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from tree_translator.config import Settings, get_settings
from tree_translator.core.config import (
    ARCHIVE_NAME,
    DEFAULT_OUTPUT_DIR_NAME,
    INPUT_DIR_NAME,
    MANAGED_OUTPUTS_DIR_NAME,
    OUTPUT_FOLDER_NAME_PATTERN,
)
from tree_translator.core.path_safety import is_path_inside_directory
from tree_translator.exceptions import UserInputError


@dataclass(frozen=True)
class WorkspacePaths:
    root: str
    input: str
    output: str
    zip: str
    # The managed folder name when the output was given as a bare name
    output_folder: Optional[str] = None


def expand_home_directory_path(raw_path: str) -> str:
    if raw_path == "~":
        return os.path.expanduser("~")
    if raw_path.startswith("~/") or raw_path.startswith("~\\"):
        return os.path.join(os.path.expanduser("~"), raw_path[2:])
    return raw_path


def is_named_output_folder(raw_output_folder: str) -> bool:
    return (
        "/" not in raw_output_folder
        and "\\" not in raw_output_folder
        and OUTPUT_FOLDER_NAME_PATTERN.match(raw_output_folder) is not None
    )


class WorkspaceManager:
    """Allocates the per-job directories under the jobs base directory."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def base_dir(self) -> str:
        return os.path.abspath(self.settings.JOBS_BASE_DIR)

    def managed_output_dir(self, folder_name: str) -> str:
        return os.path.join(self.base_dir, MANAGED_OUTPUTS_DIR_NAME, folder_name)

    def validate_output_directory_path(self, raw_output_folder: str) -> str:
        """Turn the user's output location into an absolute directory path.

        A bare folder name maps to a managed directory under the jobs base
        directory. Anything else is expanded and resolved, must not be a
        filesystem root, and in a restricted environment must live under the
        temp directory.
        """
        normalized = raw_output_folder.strip()
        if not normalized:
            raise UserInputError("Please enter an output folder")

        if is_named_output_folder(normalized):
            return self.managed_output_dir(normalized)

        resolved = os.path.abspath(expand_home_directory_path(normalized))
        drive, rest = os.path.splitdrive(resolved)
        if rest in (os.sep, "/", "\\", ""):
            raise UserInputError("Output folder cannot be a filesystem root")

        if self.settings.RESTRICTED_ENVIRONMENT and not is_path_inside_directory(resolved, tempfile.gettempdir()):
            raise UserInputError(
                f"This environment only supports output paths under {tempfile.gettempdir()}"
            )

        return resolved

    def prepare(self, job_id: str, output_folder: Optional[str] = None) -> WorkspacePaths:
        """Create ``<base>/<job_id>/input`` and the output directory for a job.

        Without an output location the output lives in ``<base>/<job_id>/output``.
        """
        root = os.path.join(self.base_dir, job_id)
        input_dir = os.path.join(root, INPUT_DIR_NAME)
        zip_path = os.path.join(root, ARCHIVE_NAME)

        requested = (output_folder or "").strip()
        if requested:
            output_dir = self.validate_output_directory_path(requested)
            managed_name = requested if is_named_output_folder(requested) else None
        else:
            output_dir = os.path.join(root, DEFAULT_OUTPUT_DIR_NAME)
            managed_name = None

        os.makedirs(input_dir, exist_ok=True)
        os.makedirs(output_dir, exist_ok=True)

        return WorkspacePaths(root=root, input=input_dir, output=output_dir, zip=zip_path,
                              output_folder=managed_name)
