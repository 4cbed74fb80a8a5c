from grading.api.routers.results import router as results_router


__all__ = [
    "results_router",
]
