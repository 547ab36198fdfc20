"""Translate the text files of a project tree while keeping everything else intact."""

__version__ = "0.1.0"
