"""
ZoneSniper – Domain Exceptions
================================
Excepciones específicas del motor de análisis.

Ninguna es fatal para la aplicación que lo envuelve: todas se
recuperan reintentando con otra configuración o con más datos.

JERARQUÍA:
    DomainError (base)
    ├── InsufficientDataError
    ├── InvalidConfigurationError
    ├── ValidationError
    └── AnalysisSupersededError

Los huecos de datos (DataGap) NO son excepciones: se adjuntan como
advertencias al resultado del análisis.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }

    def to_warning(self) -> dict:
        """Mismo contenido que to_dict() con la forma de advertencia ("code")."""
        data = self.to_dict()
        data["code"] = data.pop("error")
        return data


class InsufficientDataError(DomainError):
    """Error cuando no hay suficientes velas para un cálculo."""

    def __init__(self, message: str, required: Optional[int] = None, available: Optional[int] = None):
        super().__init__(message, code="INSUFFICIENT_DATA")
        self.required = required
        self.available = available

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"required": self.required, "available": self.available})
        return data


class InvalidConfigurationError(DomainError):
    """Configuración rechazada antes de empezar cualquier escaneo."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, code="INVALID_CONFIGURATION")
        self.field = field
        self.value = value


class ValidationError(DomainError):
    """Error de validación de datos de entrada (velas, zonas)."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class AnalysisSupersededError(DomainError):
    """El análisis en curso quedó obsoleto (nuevo precio o nueva config)."""

    def __init__(self, message: str = "Análisis reemplazado antes de terminar", partitions_done: int = 0):
        super().__init__(message, code="ANALYSIS_SUPERSEDED")
        self.partitions_done = partitions_done
