"""
Credentials module for the must-gather shipper.

Fetches single-use storage credentials from the issuing service.
"""

from .client import CredentialClient, Credentials

__all__ = ["CredentialClient", "Credentials"]
