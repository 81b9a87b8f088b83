class SightingsError(Exception):
    """Base class for everything raised by the sightings pipeline."""

class ValidationError(SightingsError):
    """Bad input from an admin/tool call (report drafts return a reason instead)."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

class StoreError(SightingsError):
    """The document store could not be read or written. Not retried."""

class PolicyReadError(SightingsError):
    """Feature flag document unreadable or malformed; callers fall back to the default policy."""
