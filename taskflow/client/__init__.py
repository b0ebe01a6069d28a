"""Python client for the TaskFlow API."""

from taskflow.client.cache import QueryCache
from taskflow.client.session import HydrationPhase, SessionState, SessionStore
from taskflow.client.storage import JSONFileStorage, MemoryStorage
from taskflow.client.todos import TodoBoard, resolve_drop_status
from taskflow.client.transport import ApiClient, Navigator, RequestContext

__all__ = [
    "ApiClient",
    "HydrationPhase",
    "JSONFileStorage",
    "MemoryStorage",
    "Navigator",
    "QueryCache",
    "RequestContext",
    "SessionState",
    "SessionStore",
    "TodoBoard",
    "resolve_drop_status",
]
