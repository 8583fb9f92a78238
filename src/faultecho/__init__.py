"""faultecho - fault-injection echo service with per-namespace traffic metrics."""

from faultecho._version import __version__

__all__ = ["__version__"]
