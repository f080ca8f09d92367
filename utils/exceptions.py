"""
Custom Exceptions
Error taxonomy for the briefing pipeline.
"""


class IntelPipelineError(Exception):
    """Base error for the briefing pipeline"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(IntelPipelineError):
    """Invalid or incomplete configuration"""
    pass


class SourceUnavailable(IntelPipelineError):
    """One adapter's fetch failed or timed out"""

    def __init__(self, message: str, source: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source


class NoEvidenceFound(IntelPipelineError):
    """Aggregation produced zero items"""
    pass


class ResolutionFailure(IntelPipelineError):
    """A single link could not be resolved"""

    def __init__(self, message: str, url: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.url = url


class SynthesisError(IntelPipelineError):
    """The summarizer failed or returned unusable output"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class StoreWriteFailure(IntelPipelineError):
    """A job store write did not go through"""

    def __init__(self, message: str, job_id: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.job_id = job_id


class InvalidTransitionError(IntelPipelineError):
    """Job status change that the state machine does not allow"""
    pass
