"""
Density Classifier
==================

Maps a person count to a DensityTier using two thresholds.

Rules:
    count >= critical_threshold                      -> CRITICAL
    warning_threshold <= count < critical_threshold  -> WARNING
    otherwise                                        -> QUIET

warning_threshold == critical_threshold is valid configuration: the warning
tier is then unreachable and any count meeting the threshold is critical.
"""

import logging

from stampede_watch.models.state import DensityTier


logger = logging.getLogger(__name__)


def validate_thresholds(warning_threshold: int, critical_threshold: int) -> None:
    """Raise ValueError unless 0 <= warning_threshold <= critical_threshold."""
    if warning_threshold < 0 or critical_threshold < 0:
        raise ValueError(
            f"thresholds must be non-negative "
            f"(warning={warning_threshold}, critical={critical_threshold})"
        )
    if warning_threshold > critical_threshold:
        raise ValueError(
            f"warning_threshold must be <= critical_threshold "
            f"(warning={warning_threshold}, critical={critical_threshold})"
        )


def classify(count: int, warning_threshold: int, critical_threshold: int) -> DensityTier:
    """
    Classify a person count.

    Args:
        count: Non-negative person count
        warning_threshold: Count at which WARNING starts
        critical_threshold: Count at which CRITICAL starts

    Returns:
        DensityTier for the count

    Raises:
        ValueError: On a negative count or invalid thresholds
    """
    validate_thresholds(warning_threshold, critical_threshold)
    if count < 0:
        raise ValueError(f"count must be non-negative (got {count})")

    if count >= critical_threshold:
        return DensityTier.CRITICAL
    if count >= warning_threshold:
        return DensityTier.WARNING
    return DensityTier.QUIET


class DensityClassifier:
    """
    Classifier bound to a validated threshold pair.

    Example:
        classifier = DensityClassifier(warning_threshold=1, critical_threshold=3)
        classifier.classify(2)  # DensityTier.WARNING
    """

    def __init__(self, warning_threshold: int = 1, critical_threshold: int = 3) -> None:
        validate_thresholds(warning_threshold, critical_threshold)
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold

        if warning_threshold == critical_threshold:
            logger.info(
                f"warning_threshold == critical_threshold ({critical_threshold}); "
                f"warning tier is unreachable"
            )

    def classify(self, count: int) -> DensityTier:
        return classify(count, self.warning_threshold, self.critical_threshold)
