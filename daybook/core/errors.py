"""Error taxonomy for the assistant pipeline.

Upstream client wrappers translate provider SDK exceptions into
``UpstreamError`` and decide ``retryable`` there, so the retry policy never
has to inspect message text.
"""

# HTTP statuses that mean "overloaded / temporarily unavailable".
# 529 is Anthropic's overloaded signature; 503 is the generic one.
OVERLOADED_STATUS_CODES = frozenset({503, 529})


class UpstreamError(Exception):
    """A call to a model provider failed."""

    def __init__(
        self,
        service: str,
        message: str,
        *,
        retryable: bool = False,
        status_code: int | None = None,
    ):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.retryable = retryable
        self.status_code = status_code


class MalformedModelOutputError(ValueError):
    """Model output did not match the expected shape."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "malformed model output")
        self.errors = errors


def is_retryable(error: BaseException) -> bool:
    """Retry predicate: only upstream errors flagged as transient qualify."""
    return isinstance(error, UpstreamError) and error.retryable


def upstream_error_from(service: str, exc: Exception) -> UpstreamError:
    """Wrap a provider SDK exception, flagging overload signatures as retryable.

    Both the OpenAI and Anthropic SDKs expose ``status_code`` on their
    ``APIStatusError`` subclasses; connection errors carry none and are fatal.
    """
    if isinstance(exc, UpstreamError):
        return exc
    status_code = getattr(exc, "status_code", None)
    return UpstreamError(
        service,
        f"{type(exc).__name__}: {exc}",
        retryable=status_code in OVERLOADED_STATUS_CODES,
        status_code=status_code,
    )
