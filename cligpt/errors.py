"""Exception taxonomy for cligpt."""


class ChatError(Exception):
    """Base class for reportable failures in the chat client."""


class ConfigError(ChatError):
    """Raised for problems with the settings store."""


class ConfigUnavailable(ConfigError):
    """Raised when the settings store is missing or unreadable."""


class ConfigWriteFailure(ConfigError):
    """Raised when an atomic rewrite of the settings store cannot complete.

    The previous store contents are left untouched.
    """


class ValidationError(ChatError):
    """Raised when a user-supplied setting violates a constraint."""


class GatewayError(ChatError):
    """Base class for failed round-trips to the completion endpoint."""


class TransportError(GatewayError):
    """Raised when the outbound call could not be completed."""


class ProtocolError(GatewayError):
    """Raised when the response is not in the expected shape."""
