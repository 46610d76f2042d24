class Track2GiveError(Exception):
    pass


class NotFoundError(Track2GiveError):
    """Referenced record does not exist or is not owned by the caller."""


class InvalidStateError(Track2GiveError):
    """The requested lifecycle transition is not allowed from the current state."""
