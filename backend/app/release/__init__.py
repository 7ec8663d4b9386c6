"""Release workflow: orchestrator, mergeability poller, and outcome mapping."""

from app.release.orchestrator import ReleaseOrchestrator
from app.release.poller import MergeabilityPoller, PollPolicy

__all__ = ["MergeabilityPoller", "PollPolicy", "ReleaseOrchestrator"]
