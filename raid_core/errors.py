class InvalidActionError(ValueError):
    """Raised when an inbound raid action is malformed or not permitted."""
