"""Custom exception hierarchy for launchgrid."""

from __future__ import annotations


class LaunchGridError(Exception):
    """Base class for all custom errors raised by launchgrid."""


# --- 3-layer hierarchy ---

class DomainError(LaunchGridError):
    """Base class for layout model errors."""


class InfrastructureError(LaunchGridError):
    """Base class for storage and OS integration errors."""


class ApplicationError(LaunchGridError):
    """Base class for coordinator-level errors."""


# --- Domain errors ---

class ItemNotFoundError(DomainError):
    """Raised when a grid position or application cannot be located."""


class FolderNotFoundError(DomainError):
    """Raised when a folder id is not present in the folder registry."""


class InvalidMoveError(DomainError):
    """Raised when a move references a position outside the sequence."""


# --- Infrastructure errors ---

class DatabaseError(InfrastructureError):
    """Raised when a layout store operation fails."""


class ConnectionPoolExhausted(InfrastructureError):
    """Raised when no connections are available in the pool."""


# --- Application errors ---

class ScanError(ApplicationError):
    """Raised when an application scan or change classification fails."""


class ImportValidationError(ApplicationError):
    """Raised when an imported layout document is rejected."""


class SourceError(ApplicationError):
    """Raised when a custom application source path is unusable."""


# --- Settings ---

class SettingsError(LaunchGridError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
