import re
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables so provider SDKs see keys from .env as well
load_dotenv()

# Directory Configuration
BASE_DIR = Path(__file__).parent.parent.parent

# Directory names never descended into when scanning a project tree
DEFAULT_IGNORED_DIRECTORIES = frozenset({
    ".git",
    "node_modules",
    ".next",
    ".turbo",
    ".idea",
    ".vscode",
    "dist",
    "build",
})

# Path segments that cause an uploaded file to be dropped before staging
UPLOAD_IGNORED_SEGMENTS = frozenset({
    ".git",
    "node_modules",
    ".next",
    ".turbo",
    "dist",
    "build",
})

DEFAULT_ALLOWED_EXTENSIONS = [".md", ".txt", ".rst", ".adoc"]

# Binary sniffing
TEXT_SAMPLE_BYTES = 8000
SUSPICIOUS_BYTE_RATIO = 0.03

# Workspace layout
INPUT_DIR_NAME = "input"
DEFAULT_OUTPUT_DIR_NAME = "output"
MANAGED_OUTPUTS_DIR_NAME = "outputs"
ARCHIVE_NAME = "translated.zip"
CLONE_DIR_NAME = "repo"
OUTPUT_FOLDER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{0,63}$")

CANCELLED_MESSAGE = "Translation was cancelled by user"
