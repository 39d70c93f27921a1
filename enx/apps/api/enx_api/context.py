"""Request context variables for observability.

Context variables survive async boundaries, so every log line emitted while a
request is being served can be tied back to it.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Actor ID - identity id of the authorized admin making the request
actor_id_var: ContextVar[str] = ContextVar("actor_id", default="")
