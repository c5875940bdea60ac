"""
Error taxonomy for quotasync.

Fatal bootstrap errors stop the run before any transfer is attempted.
Data-unavailable errors veto the batch and are expected to clear up on the
next scheduled trigger.
"""


class QuotaSyncError(Exception):
    """Base class for all quotasync errors."""


class FatalBootstrapError(QuotaSyncError):
    """The run cannot proceed at all."""


class EngineInstallError(FatalBootstrapError):
    """rclone is missing and could not be installed."""


class CredentialError(FatalBootstrapError):
    """The service-account credential artifact is missing or invalid."""


class MountError(FatalBootstrapError):
    """The source volume is not mounted and could not be attached."""


class DataUnavailableError(QuotaSyncError):
    """Information needed by the decision gate could not be obtained."""


class QuotaQueryError(DataUnavailableError):
    """The remote quota query failed at the transport level."""


class QuotaParseError(DataUnavailableError):
    """The remote quota response lacked numeric total/used fields."""


class EstimationError(DataUnavailableError):
    """The dry-run preview could not produce a size estimate."""


class EngineError(QuotaSyncError):
    """An rclone invocation exited with an error or could not be spawned."""

    def __init__(self, message: str, returncode: int = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class NotificationError(QuotaSyncError):
    """The mail API rejected or never received a notification."""


class ConfigError(QuotaSyncError):
    """Configuration values are missing or malformed."""


class UnitParseError(ValueError):
    """A size token carries a unit suffix that is not a known binary unit."""
