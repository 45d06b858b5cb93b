"""
Custom Exception Classes for the Resume Matcher API
"""
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type

from fastapi import HTTPException


class ResumeMatcherError(Exception):
    """Base exception for the Resume Matcher API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class InvalidInputError(ResumeMatcherError):
    """Raised when the request payload is missing or empty"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="INVALID_INPUT", details=details, **kwargs)


class StoreUnavailableError(ResumeMatcherError):
    """Raised when the candidate or report store cannot be reached"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="STORE_UNAVAILABLE", details=details, **kwargs)


class ConfigurationError(ResumeMatcherError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class ScoringErrorKind(str, Enum):
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"


class ScoringError(ResumeMatcherError):
    """Raised when an LLM completion fails or its answer cannot be used"""

    def __init__(
        self,
        message: str,
        kind: ScoringErrorKind,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **kwargs
    ):
        self.kind = kind
        self.status_code = status_code
        self.body = body
        details = kwargs.pop('details', {})
        details['kind'] = kind.value
        if status_code is not None:
            details['status_code'] = status_code
        if body:
            # response bodies can be large HTML error pages
            details['body'] = body[:500]
        super().__init__(message, error_code=f"SCORING_{kind.name}", details=details, **kwargs)

    @property
    def is_transport_error(self) -> bool:
        return self.kind is ScoringErrorKind.TRANSPORT_ERROR


def map_to_http_exception(exc: ResumeMatcherError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        InvalidInputError: 400,
        ConfigurationError: 500,
        StoreUnavailableError: 500,
        ScoringError: 502,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.message,
        "error_code": exc.error_code,
        "details": exc.details,
    }

    return HTTPException(status_code=status_code, detail=detail)


def exponential_backoff(attempt: int) -> float:
    """Seconds to wait after the failed attempt with 0-based index ``attempt``."""
    return float(2 ** attempt)


async def with_retry(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_retries: int = 2,
    backoff: Callable[[int], float] = exponential_backoff,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    logger=None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs
):
    """Await ``func(*args, **kwargs)``, retrying up to ``max_retries`` extra times.

    The wait between attempts is ``backoff(attempt)`` where ``attempt`` is the
    0-based index of the attempt that just failed. The last exception is
    re-raised once the retries are exhausted.
    """
    name = getattr(func, "__name__", repr(func))
    total_attempts = max_retries + 1

    for attempt in range(total_attempts):
        try:
            return await func(*args, **kwargs)
        except exceptions as e:
            if attempt >= max_retries:
                if logger:
                    logger.error(f"All {total_attempts} attempts failed for {name}: {str(e)}")
                raise

            delay = backoff(attempt)
            if logger:
                logger.warning(
                    f"Attempt {attempt + 1}/{total_attempts} failed for {name}: {str(e)} "
                    f"- retrying in {delay:.1f}s"
                )
            await sleep(delay)
