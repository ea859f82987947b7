"""Coordinators - Orchestration layer wiring scanning, reading and saving together."""

from .load_pipeline import LoadPipeline, LoadResult

__all__ = [
    "LoadPipeline",
    "LoadResult",
]
