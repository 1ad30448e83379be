"""Roaster telemetry time-series engine.

Keeps a bounded working set of live samples from a roasting device, delta
encodes it for transport, thins long histories for display and derives a
smoothed Rate of Rise (RoR) with roast-phase statistics.
"""

__all__ = [
    "config",
    "core",
    "data",
    "utils",
]
