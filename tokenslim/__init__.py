"""
tokenslim package
Measure, rank and rewrite source files for token efficiency, with validation and rollback.
"""

__version__ = "0.1.0"

from .changeset import ChangeSet  # noqa: F401
from .logbook import Logbook  # noqa: F401
from .metrics import MetricsEngine, RankedFile  # noqa: F401
from .orchestrator import BatchOrchestrator, BatchSummary  # noqa: F401
from .scanner import Metrics, Scanner  # noqa: F401
from .session import Applied, Rejected, RewriteSession, RolledBack, SessionState, Skipped  # noqa: F401

__all__ = [
    "ChangeSet",
    "Logbook",
    "MetricsEngine",
    "RankedFile",
    "BatchOrchestrator",
    "BatchSummary",
    "Metrics",
    "Scanner",
    "Applied",
    "Rejected",
    "RewriteSession",
    "RolledBack",
    "SessionState",
    "Skipped",
]
