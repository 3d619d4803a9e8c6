"""Exception hierarchy for the deployment pipeline."""


class TouchlessError(Exception):
    """Base exception for deployment failures."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class StageError(TouchlessError):
    """A stage's own action failed."""

    pass


class ExecutionError(TouchlessError):
    """An external command could not be launched at all."""

    def __init__(self, message: str, program: str, stage: str | None = None):
        super().__init__(message, stage=stage)
        self.program = program


class RemediationError(TouchlessError):
    """A remediation attempt could not even be carried out."""

    pass


class PersistenceError(TouchlessError):
    """The resume point could not be written."""

    pass
