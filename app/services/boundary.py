"""Outermost operation boundary: unexpected faults become generic failure results."""

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from app.core.security import ConfigurationError
from app.schemas.common import ApiResponse, ErrorCode

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., ApiResponse])


def service_boundary(failure_prefix: str) -> Callable[[F], F]:
    """
    Wrap a service method so no raw exception reaches the caller.

    Business failures are already returned as ApiResponse.fail(...); anything raised
    is rolled back (when the service has a unit of work), logged with traceback, and
    returned as "<failure_prefix>: an unexpected error occurred". ConfigurationError
    is fatal and propagates.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> ApiResponse:
            try:
                return func(self, *args, **kwargs)
            except ConfigurationError:
                raise
            except Exception:
                uow = getattr(self, "uow", None)
                if uow is not None:
                    try:
                        uow.rollback()
                    except Exception:
                        logger.exception("Rollback failed after error in %s", func.__qualname__)
                logger.exception("%s (%s)", failure_prefix, func.__qualname__)
                return ApiResponse.fail(
                    f"{failure_prefix}: an unexpected error occurred",
                    ErrorCode.UNEXPECTED,
                )

        return wrapper  # type: ignore[return-value]

    return decorator
