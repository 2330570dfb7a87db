"""
Shared plumbing for scoring strategies
"""

import functools

import structlog

logger = structlog.get_logger(__name__)


def degrade_to_empty(strategy_name: str):
    """
    Strategy-boundary guard: an unexpected failure yields an empty result

    The wrapped callable's first positional argument after self is taken
    as the user id for log context.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                logger.warning("Recommendation strategy degraded",
                               strategy=strategy_name,
                               user_id=args[0] if args else kwargs.get('user_id'),
                               error=str(e),
                               exc_info=True)
                return []
        return wrapper
    return decorator
