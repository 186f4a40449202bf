"""Narration pipeline orchestration."""

from .orchestrator import NarrationOrchestrator

__all__ = ["NarrationOrchestrator"]
