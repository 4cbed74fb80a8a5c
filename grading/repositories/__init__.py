from grading.repositories.grading_repository import GradingRepository

__all__ = [
    "GradingRepository",
]
