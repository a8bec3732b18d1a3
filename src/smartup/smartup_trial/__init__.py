"""
smartup_trial - Isolated Update Trials
"""

from smartup.smartup_trial.runner import (
    ImpactTester,
    SandboxedTrialRunner,
    TrialResult,
    TrialState,
)

__all__ = [
    "ImpactTester",
    "SandboxedTrialRunner",
    "TrialResult",
    "TrialState",
]
