"""Statistics path: side attribution and the match stats fold."""

from roundscope.analysis.models import MatchStats, PlayerStats, RoundRecord
from roundscope.analysis.sides import scoring_side, sides_swapped
from roundscope.analysis.stats import aggregate_match_stats

__all__ = [
    "MatchStats",
    "PlayerStats",
    "RoundRecord",
    "aggregate_match_stats",
    "scoring_side",
    "sides_swapped",
]
