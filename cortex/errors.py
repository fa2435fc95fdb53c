"""Exception types raised inside the cognitive core.

None of these are meant to escape to the assistant turn loop: the memory
manager and autonomy engine catch them at their own boundaries.
"""


class CortexError(Exception):
    """Base class for all Cortex errors."""


class ExtractionError(CortexError):
    """The extraction model timed out, failed, or returned unusable output."""


class StateStoreError(CortexError):
    """The backing key-value store could not be read or written."""
