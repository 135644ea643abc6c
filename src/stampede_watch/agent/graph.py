"""
Detection Graph
===============

LangGraph workflow for one detection sample.

LangGraph is used for CONTROL FLOW only. Nodes are deterministic.

Graph Structure:
    START -> classify --(critical)---> gate -> END
             classify --(otherwise)--> END

    classify: count -> DensityTier
    gate:     DensityTier -> Optional[AlertEvent] (cooldown applied)

Non-critical samples never reach the gate, so they cannot touch the
cooldown state.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from stampede_watch.agent.gate import CooldownGate
from stampede_watch.models.alert import AlertEvent
from stampede_watch.models.detection import DetectionSample
from stampede_watch.models.state import DensityTier
from stampede_watch.signals.classifier import DensityClassifier


logger = logging.getLogger(__name__)


class DetectionGraphState(TypedDict):
    """
    State passed through the detection graph.

    Attributes:
        sample: The sample being processed
        now: Monotonic time of the sample (for the gate)
        tier: Tier assigned by the classify node
        alert: Alert granted by the gate node, if any
    """
    sample: DetectionSample
    now: float
    tier: Optional[DensityTier]
    alert: Optional[AlertEvent]


@dataclass(frozen=True, slots=True)
class GraphResult:
    """Outcome of processing one sample."""

    tier: DensityTier
    alert: Optional[AlertEvent]


class DetectionGraph:
    """
    Classify -> gate pipeline for the monitoring loop.

    Samples must be processed one at a time, in capture order; the gate
    decision for sample n is fully applied before sample n+1 is evaluated.
    """

    def __init__(
        self,
        classifier: DensityClassifier,
        gate: CooldownGate,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Initialize the graph.

        Args:
            classifier: Threshold-bound density classifier
            gate: Cooldown gate owning the alert state
            clock: Monotonic time source (defaults to the gate's clock)
        """
        self.classifier = classifier
        self.gate = gate
        self.clock = clock or gate.clock

        self._graph = self._build_graph()
        self._samples_processed: int = 0

        logger.info(
            f"DetectionGraph initialized: warning>={classifier.warning_threshold}, "
            f"critical>={classifier.critical_threshold}, "
            f"cooldown={gate.cooldown_seconds}s"
        )

    def _build_graph(self) -> Any:
        workflow = StateGraph(DetectionGraphState)

        workflow.add_node("classify", self._classify_node)
        workflow.add_node("gate", self._gate_node)

        workflow.set_entry_point("classify")
        workflow.add_conditional_edges(
            "classify",
            self._route_after_classify,
            {"gate": "gate", END: END},
        )
        workflow.add_edge("gate", END)

        return workflow.compile()

    def _classify_node(self, state: DetectionGraphState) -> Dict[str, Any]:
        return {"tier": self.classifier.classify(state["sample"].count)}

    @staticmethod
    def _route_after_classify(state: DetectionGraphState) -> str:
        return "gate" if state["tier"] is DensityTier.CRITICAL else END

    def _gate_node(self, state: DetectionGraphState) -> Dict[str, Any]:
        sample = state["sample"]
        alert = self.gate.offer(
            state["tier"],
            sample.count,
            now=state["now"],
            occurred_at=sample.captured_at,
        )
        return {"alert": alert}

    def process(self, sample: DetectionSample, now: Optional[float] = None) -> GraphResult:
        """
        Run one sample through classify and gate.

        Args:
            sample: Person count of the frame
            now: Monotonic time of the sample (defaults to clock())

        Returns:
            GraphResult with the tier and the granted alert (or None)
        """
        if now is None:
            now = self.clock()

        result = self._graph.invoke({
            "sample": sample,
            "now": now,
            "tier": None,
            "alert": None,
        })
        self._samples_processed += 1

        return GraphResult(tier=result["tier"], alert=result.get("alert"))

    def reset(self) -> None:
        """Reset the gate to IDLE."""
        self.gate.reset()
        logger.info("DetectionGraph reset")

    @property
    def samples_processed(self) -> int:
        return self._samples_processed


def create_detection_graph(
    warning_threshold: int = 1,
    critical_threshold: int = 3,
    cooldown_seconds: float = 10.0,
    clock: Callable[[], float] = time.monotonic,
) -> DetectionGraph:
    """Build a DetectionGraph from plain threshold values."""
    return DetectionGraph(
        classifier=DensityClassifier(warning_threshold, critical_threshold),
        gate=CooldownGate(cooldown_seconds=cooldown_seconds, clock=clock),
    )
