"""
Archive module for the must-gather shipper.

This module packages a directory tree into a single tar.gz stream.

Invariants:
    - Only regular files become archive entries
    - A failed run never leaves a valid archive behind
"""

from .archiver import ArchiveSummary, DirectoryArchiver, archive_directory

__all__ = ["ArchiveSummary", "DirectoryArchiver", "archive_directory"]
