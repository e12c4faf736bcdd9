"""Discovery queue engine: queue, look-ahead validation, intents, scheduling, sessions."""

from discovery_engine.engine.actions import ActionRouter, intent_for_swipe
from discovery_engine.engine.prefetch import PrefetchScheduler
from discovery_engine.engine.queue import QUEUE_EXHAUSTED, DiscoveryQueue
from discovery_engine.engine.schedule import NegotiationResult, ScheduleNegotiator
from discovery_engine.engine.session import DiscoveryAdapters, DiscoverySession, SessionSnapshot

__all__ = [
    "QUEUE_EXHAUSTED",
    "ActionRouter",
    "DiscoveryAdapters",
    "DiscoveryQueue",
    "DiscoverySession",
    "NegotiationResult",
    "PrefetchScheduler",
    "ScheduleNegotiator",
    "SessionSnapshot",
    "intent_for_swipe",
]
