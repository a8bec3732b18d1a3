"""
smartup_orchestrator - Update Safety Workflows
"""

from smartup.smartup_orchestrator.orchestrator import (
    PackageExplanation,
    UpdateOrchestrator,
    UpdateReport,
)

__all__ = ["PackageExplanation", "UpdateOrchestrator", "UpdateReport"]
