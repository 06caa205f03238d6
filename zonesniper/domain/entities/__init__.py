"""Domain entities."""
from zonesniper.domain.entities.candle import Candle
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.entities.zone import Zone, ZoneKind, WickSide
from zonesniper.domain.entities.match import Match, MatchOutcome, OutcomeKind

__all__ = [
    "Candle",
    "CandleSeries",
    "Zone",
    "ZoneKind",
    "WickSide",
    "Match",
    "MatchOutcome",
    "OutcomeKind",
]
