"""Request context management using contextvars.

Each request gets a unique ID plus optional trace and origin information that
can be read anywhere in the call stack (notably by the logging processors)
without passing parameters explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
source_ip_var: ContextVar[str | None] = ContextVar("source_ip", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID for the current context."""
    trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)


def get_source_ip() -> str | None:
    """Get the IP address the current submission came from."""
    return source_ip_var.get()


def set_source_ip(source_ip: str | None) -> None:
    """Set the submitter's IP address for the current context."""
    source_ip_var.set(source_ip)


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary.

    Returns:
        Dictionary with request_id, trace_id, correlation_id and source_ip
        (only the ones that are set).
    """
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    source_ip = get_source_ip()
    if source_ip:
        context["source_ip"] = source_ip

    return context


def clear_context() -> None:
    """Clear all context variables.

    This should be called at the end of each request to prevent
    context leakage between requests.
    """
    request_id_var.set("")
    trace_id_var.set(None)
    correlation_id_var.set(None)
    source_ip_var.set(None)


class RequestContext:
    """Context manager for request scope.

    Usage:
        with RequestContext(source_ip="64.46.22.7"):
            log.info("doing something")  # Will include request_id, source_ip
    """

    def __init__(
        self,
        request_id: str | None = None,
        trace_id: str | None = None,
        correlation_id: str | None = None,
        source_ip: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.trace_id = trace_id
        self.correlation_id = correlation_id
        self.source_ip = source_ip
        self._tokens: list[tuple[ContextVar[Any], Any]] = []

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        self._tokens.append(
            (request_id_var, request_id_var.set(self.request_id or generate_request_id()))
        )
        if self.trace_id is not None:
            self._tokens.append((trace_id_var, trace_id_var.set(self.trace_id)))
        if self.correlation_id is not None:
            self._tokens.append(
                (correlation_id_var, correlation_id_var.set(self.correlation_id))
            )
        if self.source_ip is not None:
            self._tokens.append((source_ip_var, source_ip_var.set(self.source_ip)))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
