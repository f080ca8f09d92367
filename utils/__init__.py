"""
Utils Module
Logging and error types shared across the pipeline.
"""
from .logger import configure_logging, setup_logger
from .exceptions import (
    IntelPipelineError,
    ConfigurationError,
    SourceUnavailable,
    NoEvidenceFound,
    ResolutionFailure,
    SynthesisError,
    StoreWriteFailure,
    InvalidTransitionError,
)

__all__ = [
    "setup_logger",
    "configure_logging",
    "IntelPipelineError",
    "ConfigurationError",
    "SourceUnavailable",
    "NoEvidenceFound",
    "ResolutionFailure",
    "SynthesisError",
    "StoreWriteFailure",
    "InvalidTransitionError",
]
