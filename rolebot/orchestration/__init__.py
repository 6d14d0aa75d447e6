"""
Capability orchestration system.

Selects candidate capabilities for a request, runs them in one of the
execution modes, merges their results and state, and tracks timings.
"""

from .orchestrator import CapabilityOrchestrator, merge_responses

__all__ = [
    "CapabilityOrchestrator",
    "merge_responses",
]
