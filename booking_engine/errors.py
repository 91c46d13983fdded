"""Códigos de error del motor de reservas.

Ninguno de estos errores llega al flujo de compra: las operaciones públicas los
capturan, los registran y devuelven un valor degradado (precio completo, sin
descuento, "no calculable").
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_COURSE_DATA = "INVALID_COURSE_DATA"
    SESSION_COUNT_MISMATCH = "SESSION_COUNT_MISMATCH"
    INVALID_DISCOUNT_RATE = "INVALID_DISCOUNT_RATE"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class DataError(DomainError):
    """Atributo de curso ausente o mal formado (error de carga de datos)."""

    def __init__(self, entity_id, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_COURSE_DATA, message=message)
        object.__setattr__(self, "entity_id", entity_id)


class ConsistencyError(DomainError):
    """El total de sesiones recalculado no coincide con el configurado."""

    def __init__(self, entity_id, configured: int, computed: int) -> None:
        super().__init__(
            code=ErrorCode.SESSION_COUNT_MISMATCH,
            message=f"Configured {configured} sessions, schedule yields {computed}",
        )
        object.__setattr__(self, "entity_id", entity_id)
        object.__setattr__(self, "configured", configured)
        object.__setattr__(self, "computed", computed)


class ConfigurationError(DomainError):
    """Regla de descuento con una tasa fuera de [0, 100)."""

    def __init__(self, rule_id: str, rate) -> None:
        super().__init__(
            code=ErrorCode.INVALID_DISCOUNT_RATE,
            message=f"Discount rule {rule_id} has invalid rate {rate}",
        )
        object.__setattr__(self, "rule_id", rule_id)
