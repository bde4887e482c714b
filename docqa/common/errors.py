"""
Error taxonomy shared by the question-answering pipeline.
"""

from typing import Optional


APOLOGY_MESSAGE = (
    "I'm sorry, I encountered an error while trying to answer your question. "
    "Please try again later."
)


class DocQAError(Exception):
    """Base error carrying a human-readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DocQAError):
    """Missing or invalid configuration (e.g. provider credentials)."""
    pass


class BackendUnavailable(DocQAError):
    """Vector store or completion API unreachable or returned an error."""

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message)
        self.backend = backend


class QueryValidationError(DocQAError):
    """Query rejected before any I/O."""
    pass


class AnswerError(DocQAError):
    """Terminal failure surfaced by the orchestrator.

    The message is always the fixed apology; the underlying cause is chained.
    """

    def __init__(self, message: str = APOLOGY_MESSAGE):
        super().__init__(message)
