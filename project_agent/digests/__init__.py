"""Digest generators: gather issue data, prompt once, publish the answer.

Key Components:
    - StaleTaskMonitor: nudges assignees of stale issues
    - ExecutiveSummary / ProgressReport / BacklogRoast: one new report issue each
    - PriorityAssessment / DependencyAnalysis: one comment on one issue
"""

from project_agent.digests.analysis import DependencyAnalysis, PriorityAssessment
from project_agent.digests.base import DigestGenerator, Gathered, ReportDigest
from project_agent.digests.executive_summary import ExecutiveSummary
from project_agent.digests.progress_report import ProgressReport
from project_agent.digests.roast import BacklogRoast
from project_agent.digests.stale_monitor import StaleTaskMonitor

__all__ = [
    "BacklogRoast",
    "DependencyAnalysis",
    "DigestGenerator",
    "ExecutiveSummary",
    "Gathered",
    "PriorityAssessment",
    "ProgressReport",
    "ReportDigest",
    "StaleTaskMonitor",
]
