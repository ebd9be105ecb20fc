"""Exceptions raised by the deep analysis pipeline."""


class DeepAnalysisError(Exception):
    """Base exception for deep analysis errors."""

    pass


class RunNotFoundError(DeepAnalysisError):
    """Raised when a run id does not exist."""

    pass


class NoCandidatesError(DeepAnalysisError):
    """Raised when triage finds no channels for the filters. Fatal to the run."""

    pass


class ServiceCallError(DeepAnalysisError):
    """Raised when a model call fails. Fatal to the call only."""

    pass


class MalformedResponseError(ServiceCallError):
    """Raised when a model response cannot be cleaned, parsed or validated."""

    pass


class NoSuccessfulDetailsError(DeepAnalysisError):
    """Raised when a channel reaches synthesis without any usable storyboard."""

    pass


class ResolutionMismatchError(DeepAnalysisError):
    """Raised when a triage pick does not match any candidate channel."""

    pass
