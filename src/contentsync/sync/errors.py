"""
Sync error taxonomy.

  ConfigurationError  required locator or credential missing (job fails)
  SourceUnavailable   Google call failed or timed out (job fails)
  SourceEmpty         source has no rows/files (job continues, empty set)
  RecordApplyError    one record failed to write (accumulated, batch continues)
  OverlapRejected     a run was requested while another is in flight

Only the first two ever end a job. Nothing here is raised to the trigger
caller; the orchestrator turns job failures into a failed JobOutcome.
"""


class SyncError(RuntimeError):
    """Base class for every sync failure."""


class ConfigurationError(SyncError):
    """Raised when a job's source locator or the Google credentials are missing."""


class SourceUnavailable(SyncError):
    """Raised when the external source cannot be read (HTTP, auth, network, timeout)."""


class SourceEmpty(SyncError):
    """Raised by a reader when the source exists but holds no rows or files."""


class RecordApplyError(SyncError):
    """Raised by a store when a single create/update/delete fails."""

    def __init__(self, identity: str, operation: str, message: str):
        super().__init__(f"{operation} {identity}: {message}")
        self.identity = identity
        self.operation = operation
        self.message = message


class OverlapRejected(SyncError):
    """A run was requested while another was still in progress."""

    reason = "sync_in_progress"
