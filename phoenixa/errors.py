class PhoenixaError(Exception):
    """Base error for Phoenixa."""


class InvalidArgumentError(PhoenixaError, ValueError):
    """Raised when a message is constructed from invalid arguments."""


class InvalidBodyError(InvalidArgumentError, TypeError):
    """Raised when a body is not None, str, bytes, a sequence or a stream."""


class StateError(PhoenixaError, RuntimeError):
    """Raised when an operation is not valid in the object's current state."""


class BodyConsumedError(StateError):
    """Raised when a message body is read more than once."""


class HijackError(StateError):
    """Raised when a request cannot be hijacked."""
