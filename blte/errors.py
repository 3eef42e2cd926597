class BlteError(Exception):
    """Base class for BLTE-specific errors."""


# Caller input
class ArgumentError(BlteError, ValueError):
    pass


class ValidationError(ArgumentError):
    """A Block field was assigned a value that breaks its invariant."""


# Serialized data
class FormatError(BlteError, ValueError):
    pass


class TruncatedDataError(FormatError):
    """A table row or data span runs past the end of the buffer."""
