"""
Exception hierarchy for unitsync.

Startup errors (ConfigError, NoUnitsError) are fatal and reported by the CLI
with a short message. SyncError comes out of the generator and is allowed to
propagate so a failed sync never goes unnoticed.
"""


class UnitSyncError(Exception):
    """Base class for all unitsync errors."""


class ConfigError(UnitSyncError):
    """Configuration file is missing, unreadable or invalid."""


class NoUnitsError(UnitSyncError):
    """The source root contains no unit directories."""


class SyncError(UnitSyncError):
    """The destination could not be regenerated."""
