"""Error taxonomy for the learning progression engine."""


class CoachError(Exception):
    """Base class for errors surfaced to the caller."""


class ValidationError(CoachError):
    pass


class InvalidSelectionError(ValidationError):
    pass


class NotFoundError(CoachError):
    pass


class WorkflowError(CoachError):
    """The request is valid but not allowed in the current lesson state."""


class DuplicateSubmissionError(WorkflowError):
    pass


class LessonNotStartedError(WorkflowError):
    pass


class IncompleteQuizzesError(WorkflowError):
    pass


class ExternalGenerationError(Exception):
    """The plan/lesson generator failed. Recovered with fallback content."""
