"""
StampedeWatch
=============

Crowd-density monitoring with rate-limited stampede alerts.

A camera feed is scanned by a pretrained object detector, the person count
is classified into quiet / warning / critical, and a cooldown gate turns the
noisy per-frame signal into at most one alert per window. Alerts travel to a
small relay service that forwards them to a messaging channel. A separate
review workflow lets an operator approve or reject user-submitted SOS
reports.

Components:
    - stream: Frame sources (OpenCV camera, scripted frames)
    - detection: Detector adapter and person count
    - signals: Density classifier
    - agent: Cooldown gate, detection graph, alert status machine
    - dispatch: Monitor -> relay client
    - monitor: Sampling loop
    - relay: FastAPI alert relay
    - sos: SOS report review workflow and optional video triage

Example:
    from stampede_watch.config import load_config
    from stampede_watch.monitor import create_monitor

    monitor = create_monitor(load_config())
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
