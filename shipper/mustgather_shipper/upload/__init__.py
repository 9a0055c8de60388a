"""
Upload module for the must-gather shipper.

Transfers the archive to object storage with temporary credentials.
"""

from .uploader import UploadResult, Uploader

__all__ = ["UploadResult", "Uploader"]
