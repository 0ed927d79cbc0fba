"""Workflows composing the git layer into sync, pick and reset runs."""

from treadmill.orchestration.context import TreadmillContext
from treadmill.orchestration.pick import PickWorkflow
from treadmill.orchestration.reset import ResetWorkflow
from treadmill.orchestration.sync import SyncWorkflow, classify_outcome
from treadmill.orchestration.types import (
    PickRecord,
    ResetRecord,
    SyncOutcome,
    SyncRecord,
    SyncState,
)
from treadmill.orchestration.verify import run_verification

__all__ = [
    "PickRecord",
    "PickWorkflow",
    "ResetRecord",
    "ResetWorkflow",
    "SyncOutcome",
    "SyncRecord",
    "SyncState",
    "SyncWorkflow",
    "TreadmillContext",
    "classify_outcome",
    "run_verification",
]
