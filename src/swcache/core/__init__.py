"""
Core module for swcache.

Contains data models, the request classifier, the lifecycle state machine,
the cache router and its registration, and exceptions.
"""

from swcache.core.classifier import RequestClassifier
from swcache.core.exceptions import (
    CacheError,
    InstallError,
    LifecycleError,
    NetworkError,
    SwCacheError,
    ValidationError,
)
from swcache.core.lifecycle import Lifecycle, LifecycleState, PhaseEvent
from swcache.core.messages import MessagePort, MessageType
from swcache.core.models import (
    Request,
    Response,
    ResponseSource,
    RouterConfig,
    Strategy,
)
from swcache.core.registration import Client, Clients, Registration
from swcache.core.router import CacheRouter

__all__ = [
    # Models
    "Request",
    "Response",
    "ResponseSource",
    "RouterConfig",
    "Strategy",
    "MessagePort",
    "MessageType",
    # Core
    "RequestClassifier",
    "Lifecycle",
    "LifecycleState",
    "PhaseEvent",
    "CacheRouter",
    "Client",
    "Clients",
    "Registration",
    # Exceptions
    "SwCacheError",
    "CacheError",
    "InstallError",
    "LifecycleError",
    "NetworkError",
    "ValidationError",
]
