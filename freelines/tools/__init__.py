"""Utility entry points for supplementary Freelines tooling."""

from .export_gpx import export_pending, samples_to_gpx

__all__ = ["export_pending", "samples_to_gpx"]
