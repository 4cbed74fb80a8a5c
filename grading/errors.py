"""
Error taxonomy for the grading pipeline.

Structural errors (missing directory, manifest or entry point) short-circuit a
submission before any launch. Process and readiness errors end with
``server_started=False``. Test execution errors stay local to a single test
case, and port reclaim failures are only ever logged.
"""


class GradingError(Exception):
    """Base class for every error raised by the grading pipeline."""


class MissingServerDirectory(GradingError):
    pass


class MissingManifest(GradingError):
    pass


class EntryPointNotFound(GradingError):
    pass


class ProcessSpawnError(GradingError):
    pass


class ReadinessTimeoutError(GradingError):
    pass


class TestExecutionError(GradingError):
    __test__ = False


class PortReclaimFailure(GradingError):
    pass


class InvalidTransition(GradingError):
    pass


class RosterError(GradingError):
    pass


# Errors that mean the submission can never be launched
STRUCTURAL_ERRORS = (MissingServerDirectory, MissingManifest, EntryPointNotFound)
