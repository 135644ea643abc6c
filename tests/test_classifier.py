"""
Density Classifier Tests
========================
"""

import pytest

from stampede_watch.models.state import DensityTier
from stampede_watch.signals.classifier import DensityClassifier, classify


class TestClassify:
    """Tests for the count -> tier mapping."""

    def test_default_thresholds(self):
        """Verify the tier boundaries with warning=1, critical=3."""
        assert classify(0, 1, 3) is DensityTier.QUIET
        assert classify(1, 1, 3) is DensityTier.WARNING
        assert classify(2, 1, 3) is DensityTier.WARNING
        assert classify(3, 1, 3) is DensityTier.CRITICAL
        assert classify(50, 1, 3) is DensityTier.CRITICAL

    def test_monotone_in_count(self):
        """Verify a higher count never yields a lower tier."""
        tiers = [classify(n, 2, 5) for n in range(12)]
        severities = [t.severity for t in tiers]
        assert severities == sorted(severities)

    def test_equal_thresholds_skip_warning(self):
        """Verify warning is unreachable when both thresholds are equal."""
        assert classify(2, 3, 3) is DensityTier.QUIET
        assert classify(3, 3, 3) is DensityTier.CRITICAL
        assert all(classify(n, 3, 3) is not DensityTier.WARNING for n in range(10))

    def test_zero_warning_threshold(self):
        """Verify a zero warning threshold makes an empty frame a warning."""
        assert classify(0, 0, 2) is DensityTier.WARNING

    def test_negative_count_rejected(self):
        """Verify negative counts are rejected."""
        with pytest.raises(ValueError):
            classify(-1, 1, 3)

    @pytest.mark.parametrize("warning,critical", [(4, 3), (-1, 3), (1, -2)])
    def test_invalid_thresholds_rejected(self, warning, critical):
        """Verify inverted or negative thresholds are rejected."""
        with pytest.raises(ValueError):
            classify(1, warning, critical)


class TestDensityClassifier:
    """Tests for the threshold-bound classifier."""

    def test_binds_thresholds(self):
        """Verify the bound classifier matches the pure function."""
        classifier = DensityClassifier(warning_threshold=2, critical_threshold=4)
        assert classifier.classify(1) is DensityTier.QUIET
        assert classifier.classify(3) is DensityTier.WARNING
        assert classifier.classify(4) is DensityTier.CRITICAL

    def test_construction_validates(self):
        """Verify an inverted pair fails at construction."""
        with pytest.raises(ValueError):
            DensityClassifier(warning_threshold=5, critical_threshold=2)

    def test_tier_severity_order(self):
        """Verify tier severities are ordered."""
        assert DensityTier.QUIET.severity < DensityTier.WARNING.severity < DensityTier.CRITICAL.severity
