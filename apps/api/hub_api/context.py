"""Request context management for observability.

Context variables carry request-scoped identifiers across async boundaries
so that every log line emitted while serving a request can be correlated.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# User ID - application user resolved for the current session
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
