"""Telemetry and observability helpers.

This package emits structured run events for deterministic auditing.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
