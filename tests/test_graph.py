"""
Detection Graph Tests
=====================
"""

import warnings
from pathlib import Path

import stampede_watch.agent.graph as graph_module
from stampede_watch.agent.graph import create_detection_graph
from stampede_watch.models.detection import DetectionSample
from stampede_watch.models.state import DensityTier, GateState


def _sample(count: int) -> DetectionSample:
    return DetectionSample(count=count, captured_at=1714564800.0)


class TestDetectionGraph:
    """Tests for the classify -> gate workflow."""

    def test_quiet_sample(self):
        """Verify a quiet sample yields no alert."""
        graph = create_detection_graph(1, 3, 10.0)

        result = graph.process(_sample(0), now=0.0)

        assert result.tier is DensityTier.QUIET
        assert result.alert is None

    def test_warning_sample_skips_gate(self):
        """Verify warning samples never arm the gate."""
        graph = create_detection_graph(1, 3, 10.0)

        result = graph.process(_sample(2), now=0.0)

        assert result.tier is DensityTier.WARNING
        assert result.alert is None
        assert graph.gate.last_alert_at is None

    def test_critical_sample_alerts_once(self):
        """Verify back-to-back critical samples alert once."""
        graph = create_detection_graph(1, 3, 10.0)

        first = graph.process(_sample(4), now=0.0)
        second = graph.process(_sample(6), now=0.5)

        assert first.tier is DensityTier.CRITICAL
        assert first.alert is not None
        assert first.alert.people_count == 4
        assert first.alert.occurred_at == 1714564800.0
        assert second.tier is DensityTier.CRITICAL
        assert second.alert is None
        assert graph.samples_processed == 2

    def test_reset_rearms(self):
        """Verify reset lets the next critical sample alert immediately."""
        graph = create_detection_graph(1, 3, 10.0)
        graph.process(_sample(4), now=0.0)

        graph.reset()

        assert graph.gate.state(now=1.0) is GateState.IDLE
        assert graph.process(_sample(4), now=1.0).alert is not None

    def test_uses_gate_clock(self, clock):
        """Verify process() defaults to the injected clock."""
        graph = create_detection_graph(1, 3, 10.0, clock=clock)

        assert graph.process(_sample(3)).alert is not None
        clock.advance(5.0)
        assert graph.process(_sample(3)).alert is None
        clock.advance(5.0)
        assert graph.process(_sample(3)).alert is not None


class TestModuleSources:
    """Tests that the package source compiles cleanly."""

    def test_no_compile_warnings(self):
        """Verify no module emits a warning (e.g. an invalid escape) when compiled."""
        package_dir = Path(graph_module.__file__).resolve().parents[1]

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            for path in sorted(package_dir.rglob("*.py")):
                compile(path.read_text(encoding="utf-8"), str(path), "exec")
