"""API routers for the roadmap engine."""

from . import catalog, roadmap, stages

__all__ = ["catalog", "roadmap", "stages"]
