"""
Dispatch Module
===============

Monitor-side client of the alert relay.
"""

from stampede_watch.dispatch.dispatcher import (
    AlertDispatcher,
    DispatchResult,
    build_payload,
    format_timestamp,
)

__all__ = [
    "AlertDispatcher",
    "DispatchResult",
    "build_payload",
    "format_timestamp",
]
