"""
Agent Module
============

Deterministic state machines of the detection-to-alert pipeline.

    - gate.py: Debounce / cooldown gate (the only source of alerts)
    - status.py: Operator-visible status with explicit transitions
    - graph.py: LangGraph workflow wiring classify -> gate per sample

Key Design Decisions:
    - LangGraph is used for STRUCTURE, not LLM reasoning
    - Cooldown is derived from a single timestamp, never a second flag
    - Failed deliveries still consume the cooldown slot
"""

from stampede_watch.agent.gate import CooldownGate
from stampede_watch.agent.graph import DetectionGraph, GraphResult, create_detection_graph
from stampede_watch.agent.status import AlertStatusMachine

__all__ = [
    "CooldownGate",
    "AlertStatusMachine",
    "DetectionGraph",
    "GraphResult",
    "create_detection_graph",
]
