"""
Exception taxonomy for the ranking engine

Unknown ids never raise inside scoring; NotFoundError is only for callers
that want to fail loudly at their own boundary.
"""


class GraphRecError(Exception):
    """Base class for all engine errors"""


class NotFoundError(GraphRecError, LookupError):
    """Unknown user or product id"""


class InvalidArgumentError(GraphRecError, ValueError):
    """Rejected configuration or ingestion input"""


class DegradedError(GraphRecError):
    """A scoring strategy could not produce a trustworthy result"""
