"""Error taxonomy for the bracket engine. Routes translate these into HTTP status codes."""


class BracketError(Exception):
    """Base class for engine errors; the message is shown to the administrator as-is."""


class ValidationError(BracketError):
    """A precondition was violated (odd roster, wrong stage, incomplete groups, ...)."""


class NotFoundError(BracketError):
    """A referenced tournament, unit, group, match or node does not exist in this scope."""


class ConflictError(BracketError):
    """A compare-and-swap write lost against a concurrent writer."""
