"""Roadmap Engine core: stage progression for project delivery roadmaps.

Modules:
- engine: transactional entry points (RoadmapEngine)
- catalog: read-only template catalog
- roadmap: per-project phases and stages
- activation: task materialization and waterfall scheduling
- progression: stage and phase completion cascades
"""

__version__ = "1.0.0"
