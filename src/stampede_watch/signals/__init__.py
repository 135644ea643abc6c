"""
Signals Module
==============

Turns raw person counts into density tiers.
"""

from stampede_watch.signals.classifier import DensityClassifier, classify, validate_thresholds

__all__ = [
    "DensityClassifier",
    "classify",
    "validate_thresholds",
]
