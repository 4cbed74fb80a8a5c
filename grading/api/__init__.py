from grading.api.main import app

__all__ = ["app"]
