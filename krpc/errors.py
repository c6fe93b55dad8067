class DecodeError(ValueError):
    """A received KRPC message could not be decoded.

    Every subclass names one reason a message is rejected. The message
    text carries the details for logging.
    """


class InvalidBencode(DecodeError):
    """Datagram is not valid bencode."""


class NotADict(DecodeError):
    """Top-level value is not a dictionary."""


class MissingType(DecodeError):
    """No byte string under the "y" key."""


class MissingPayload(DecodeError):
    """No body under the key named by "y"."""


class UnknownType(DecodeError):
    """The "y" value is not one of "q", "r" or "e"."""


class BadErrorShape(DecodeError):
    """Error body is not a [code, message] list."""


class BadBodyShape(DecodeError):
    """Query or response body is not a dictionary with text keys."""


class MissingSender(DecodeError):
    """Query or response body has no "id"."""


class InvalidNode(DecodeError):
    """Value is not a compact node info string."""


class InvalidLength(InvalidNode):
    """Compact node info string has the wrong length."""


class MissingTransactionId(DecodeError):
    """No byte string under the "tt" key."""
