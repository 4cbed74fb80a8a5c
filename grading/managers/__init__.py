from grading.managers.entry_point_resolver import EntryPointResolver
from grading.managers.port_reclaimer import PortReclaimer
from grading.managers.process_supervisor import ProcessSupervisor
from grading.managers.readiness_probe import ReadinessProbe
from grading.managers.scoring_manager import ScoreAggregator
from grading.managers.submission_manager import SubmissionManager

__all__ = [
    "EntryPointResolver",
    "PortReclaimer",
    "ProcessSupervisor",
    "ReadinessProbe",
    "ScoreAggregator",
    "SubmissionManager",
]
