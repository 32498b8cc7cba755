"""
Side attribution across halftime and overtime swaps.

Teams keep their organization for the whole match but swap sides at
halftime and between overtime halves. These functions derive, from the
round index alone, whether sides are swapped relative to the starting
assignment and which starting side (organization) a round win belongs to.

Swap schedule (MR12 with MR3 overtime):
- Rounds 1-12: not swapped
- Rounds 13-24: swapped
- Rounds 25+: blocks of 3; block = ceil((round - 24) / 3); swapped on even blocks
  (25-27 no, 28-30 yes, 31-33 no, ...)
"""

from __future__ import annotations

from roundscope.core.constants import OVERTIME_HALF_ROUNDS, REGULATION_HALF_ROUNDS, Side


def sides_swapped(
    round_num: int,
    regulation_half: int = REGULATION_HALF_ROUNDS,
    overtime_half: int = OVERTIME_HALF_ROUNDS,
) -> bool:
    """
    Whether sides are swapped relative to the match's starting assignment.

    Args:
        round_num: 1-based round index
        regulation_half: Rounds per regulation half (12 for MR12)
        overtime_half: Rounds per overtime half (3 for MR3)

    Raises:
        ValueError: If round_num < 1
    """
    if round_num < 1:
        raise ValueError(f"round_num must be >= 1, got {round_num}")

    if round_num <= regulation_half:
        return False

    regulation_rounds = regulation_half * 2
    if round_num <= regulation_rounds:
        return True

    # Ceiling division without floats
    block = -(-(round_num - regulation_rounds) // overtime_half)
    return block % 2 == 0


def scoring_side(
    round_num: int,
    winner: Side,
    regulation_half: int = REGULATION_HALF_ROUNDS,
    overtime_half: int = OVERTIME_HALF_ROUNDS,
) -> Side:
    """
    Starting side of the organization credited with a round win.

    When sides are swapped the winner's current side is the other team's
    starting side, so the credit goes to the opposite side.
    """
    if sides_swapped(round_num, regulation_half, overtime_half):
        return winner.opposite
    return winner
