"""
basesync: additive Airtable schema synchronization for client provisioning.

basesync creates client bases from a source schema definition, or brings
existing bases up to date by adding the tables and fields they are missing.
"""

__version__ = "0.1.0"
__author__ = "basesync Contributors"

from .config import BaseSyncConfig
from .exceptions import (
    BaseSyncError,
    ConfigurationError,
    FieldApplicationFailed,
    StoreUnavailable,
)

__all__ = [
    "__version__",
    "BaseSyncConfig",
    "BaseSyncError",
    "ConfigurationError",
    "FieldApplicationFailed",
    "StoreUnavailable",
]
