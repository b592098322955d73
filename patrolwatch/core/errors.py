"""Error taxonomy for the patrol engine."""


class PatrolError(Exception):
    """Base class for patrol engine errors."""


class InvalidRequest(PatrolError):
    """Rejected request; no state was changed."""


class NotFound(PatrolError):
    """Unknown checkpoint or session id."""
