"""Application DTOs - Data Transfer Objects for use cases."""
from zonesniper.application.dto.analysis_dto import AnalysisResponseDTO

__all__ = [
    "AnalysisResponseDTO",
]
