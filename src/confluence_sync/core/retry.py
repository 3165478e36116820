"""Bounded retry around a single request.

The client wraps each HTTP call in ``retry_once_with_refresh`` so the
policy (one credential refresh, one repeat) is visible in one place and
testable independently of the request code.
"""

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from ..errors import AuthenticationError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def retry_once_with_refresh(
    request: Callable[[], T],
    refresh: Callable[[], Any] | None,
    *,
    retry_on: tuple[type[Exception], ...] = (AuthenticationError,),
    log: logging.Logger | None = None,
) -> T:
    """Call *request*; on a ``retry_on`` error refresh credentials and call it once more.

    Args:
        request: Zero-argument callable performing the request.
        refresh: Zero-argument callable refreshing credentials. When None
            the first failure propagates unchanged.
        retry_on: Exception types that trigger the refresh.
        log: Logger to report the retry on (defaults to this module's).

    Returns:
        The result of the first successful call.

    Raises:
        The error of the second attempt, or of the first when no refresh
        is available. Errors raised by *refresh* itself propagate.
    """
    log = log or logger
    try:
        return request()
    except retry_on as exc:
        if refresh is None:
            raise
        log.info("Request rejected (%s); refreshing credentials and retrying once", exc)
        refresh()
    return request()


def refresh_on_auth_failure(
    refresh_attr: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Method decorator form of ``retry_once_with_refresh``.

    *refresh_attr* names the instance attribute holding the refresh
    callable, looked up at call time so it may be ``None``.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> T:
            return retry_once_with_refresh(
                lambda: func(self, *args, **kwargs),
                getattr(self, refresh_attr, None),
                log=getattr(self, "logger", None),
            )

        return wrapper

    return decorator
