"""Dirección de la operación simulada por el Ghost Runner."""

from __future__ import annotations

from enum import Enum


class TradeDirection(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        return 1 if self is TradeDirection.LONG else -1
