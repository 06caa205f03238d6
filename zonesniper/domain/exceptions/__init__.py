"""Domain exceptions."""
from zonesniper.domain.exceptions.domain_errors import (
    DomainError,
    InsufficientDataError,
    InvalidConfigurationError,
    ValidationError,
    AnalysisSupersededError,
)

__all__ = [
    "DomainError",
    "InsufficientDataError",
    "InvalidConfigurationError",
    "ValidationError",
    "AnalysisSupersededError",
]
