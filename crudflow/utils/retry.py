from __future__ import annotations

import logging
from typing import Callable, Tuple, Type, TypeVar

from crudflow.errors import PipelineCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_call(
    func: Callable[..., T],
    *args,
    max_attempts: int = 2,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "",
    **kwargs,
) -> T:
    """Call ``func`` until it succeeds or ``max_attempts`` calls have failed.

    Arguments are passed unchanged on every attempt and there is no backoff.
    The last failure propagates. Cancellation is never retried.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    name = label or getattr(func, "__name__", "call")
    attempt = 0
    while True:
        attempt += 1
        try:
            return func(*args, **kwargs)
        except PipelineCancelledError:
            raise
        except exceptions as exc:
            if attempt >= max_attempts:
                logger.error("%s failed after %d attempt(s): %s", name, attempt, exc)
                raise
            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying", name, attempt, max_attempts, exc
            )
