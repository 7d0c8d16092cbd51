"""Beamer - push a single file to a remote host every time it is written."""

__version__ = "0.1.0"
