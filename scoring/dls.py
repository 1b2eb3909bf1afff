"""
DLS Resource Calculator

Rain-affected target revision using a simplified Duckworth-Lewis-Stern
resource table (Standard Edition shape). The par score is a straight ratio
of resources; there is no G50 normalisation, so results are an amateur
approximation and not the official method.

All functions are total: out-of-range inputs are clamped, never rejected.

Usage:
    from scoring.dls import calculate_dls_target

    result = calculate_dls_target(180, 20, False, 20, 5)
    result.target   # 151
"""

from __future__ import annotations

import math
from typing import NamedTuple

# =============================================================================
# Resource Table
# =============================================================================

MAX_DLS_OVERS = 50
MAX_DLS_WICKETS = 10

# Published anchor rows: overs remaining -> resource % for 0..10 wickets lost
_ANCHOR_ROWS: dict[int, tuple[float, ...]] = {
    50: (100.0, 93.4, 85.1, 74.9, 62.7, 49.0, 34.9, 22.0, 11.9, 4.7, 0.0),
    45: (97.1, 91.2, 83.8, 74.4, 62.5, 49.0, 34.9, 22.0, 11.9, 4.7, 0.0),
    40: (93.4, 88.3, 81.8, 73.2, 62.0, 48.9, 34.9, 22.0, 11.9, 4.7, 0.0),
    35: (88.5, 84.0, 78.6, 71.0, 60.8, 48.6, 34.8, 22.0, 11.9, 4.7, 0.0),
    30: (82.7, 78.9, 74.4, 68.1, 58.9, 47.6, 34.6, 22.0, 11.9, 4.7, 0.0),
    25: (75.8, 72.6, 68.9, 63.9, 56.0, 46.1, 34.2, 22.0, 11.9, 4.7, 0.0),
    20: (67.3, 64.9, 62.0, 58.2, 52.0, 44.0, 33.2, 21.8, 11.9, 4.7, 0.0),
    15: (56.1, 54.4, 52.4, 49.9, 45.9, 40.0, 31.4, 21.3, 11.8, 4.7, 0.0),
    10: (42.4, 41.3, 40.0, 38.6, 36.4, 33.0, 27.7, 20.0, 11.5, 4.7, 0.0),
    9: (39.1, 38.1, 37.0, 35.7, 33.8, 30.9, 26.2, 19.2, 11.3, 4.6, 0.0),
    8: (35.5, 34.6, 33.7, 32.6, 31.0, 28.5, 24.4, 18.2, 10.9, 4.5, 0.0),
    7: (31.5, 30.8, 30.0, 29.1, 27.8, 25.8, 22.4, 17.0, 10.4, 4.4, 0.0),
    6: (27.2, 26.6, 26.0, 25.3, 24.3, 22.8, 20.1, 15.5, 9.7, 4.2, 0.0),
    5: (22.6, 22.1, 21.7, 21.2, 20.4, 19.3, 17.3, 13.7, 8.8, 3.9, 0.0),
    4: (17.9, 17.5, 17.2, 16.8, 16.3, 15.5, 14.1, 11.4, 7.6, 3.5, 0.0),
    3: (13.1, 12.9, 12.6, 12.4, 12.0, 11.5, 10.6, 8.8, 6.1, 2.9, 0.0),
    2: (8.4, 8.2, 8.1, 7.9, 7.7, 7.4, 6.9, 5.9, 4.3, 2.2, 0.0),
    1: (3.9, 3.8, 3.8, 3.7, 3.6, 3.5, 3.3, 2.8, 2.1, 1.1, 0.0),
    0: (0.0,) * (MAX_DLS_WICKETS + 1),
}

# Minimum overs per side for a result to stand
MINIMUM_OVERS = {
    't20': 5,
    'odi': 20,
    'custom': 5,
}


def _build_resource_table() -> dict[int, tuple[float, ...]]:
    """
    Expand the anchor rows to every whole over 0..50.

    Overs between two anchors (e.g. 11-14) are filled by linear
    interpolation and rounded to the table's one-decimal precision.
    """
    anchors = sorted(_ANCHOR_ROWS)
    table = dict(_ANCHOR_ROWS)

    for low, high in zip(anchors, anchors[1:]):
        for overs in range(low + 1, high):
            fraction = (overs - low) / (high - low)
            table[overs] = tuple(
                round(lo + (hi - lo) * fraction, 1)
                for lo, hi in zip(_ANCHOR_ROWS[low], _ANCHOR_ROWS[high])
            )

    return table


RESOURCE_TABLE = _build_resource_table()


# =============================================================================
# Result Types
# =============================================================================

class DLSTarget(NamedTuple):
    """Revised target when overs are lost before the chase starts."""
    par_score: int
    target: int
    resources_team1: float
    resources_team2: float


class DLSMidInnings(NamedTuple):
    """Revised target when play is cut short during the chase."""
    revised_target: int
    par_score_at_interruption: int


# =============================================================================
# Interpolation
# =============================================================================

def _round_half_up(value: float, places: int) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def _interpolate_resource(overs: float, wickets: int) -> float:
    """Linear interpolation between the floor and ceiling overs rows."""
    overs_floor = math.floor(overs)
    overs_ceil = math.ceil(overs)

    resource_floor = RESOURCE_TABLE[overs_floor][wickets]
    if overs_floor == overs_ceil:
        return resource_floor

    resource_ceil = RESOURCE_TABLE[overs_ceil][wickets]
    fraction = overs - overs_floor
    return resource_floor + (resource_ceil - resource_floor) * fraction


def get_resources_remaining(overs_remaining: float, wickets_lost: int) -> float:
    """
    Resource percentage (0-100) a side still has.

    Args:
        overs_remaining: Overs left to bat; clamped to [0, 50]
        wickets_lost: Wickets already down; 10 or more means no resources

    Returns:
        Resource percentage, 0.0 for exhausted or invalid inputs
    """
    if not isinstance(overs_remaining, (int, float)) or math.isnan(overs_remaining):
        return 0.0
    if overs_remaining <= 0 or wickets_lost >= MAX_DLS_WICKETS:
        return 0.0

    overs = _round_half_up(min(float(overs_remaining), MAX_DLS_OVERS), 1)
    wickets = max(0, int(wickets_lost))
    return _interpolate_resource(overs, wickets)


# =============================================================================
# Target Revision
# =============================================================================

def calculate_dls_target(
    team1_runs: int,
    team1_overs: float,
    team1_all_out: bool,
    team2_allocated_overs: float,
    team2_overs_lost: float,
) -> DLSTarget:
    """
    Revised target for team 2 when overs are lost before their innings.

    Args:
        team1_runs: Runs scored by team 1
        team1_overs: Overs team 1 had available
        team1_all_out: Team 1 used all its resources regardless of overs
        team2_allocated_overs: Overs team 2 was originally given
        team2_overs_lost: Overs lost to the interruption

    Returns:
        DLSTarget with par score, target and both sides' resources
    """
    team1_resources = 100.0 if team1_all_out else get_resources_remaining(team1_overs, 0)

    team2_available_overs = max(0, team2_allocated_overs - team2_overs_lost)
    team2_resources = get_resources_remaining(team2_available_overs, 0)

    if team1_resources <= 0:
        # Nothing to scale against: keep the original target
        par_score = int(team1_runs)
    else:
        par_score = math.floor(team1_runs * (team2_resources / team1_resources))

    return DLSTarget(
        par_score=par_score,
        target=par_score + 1,
        resources_team1=round(team1_resources, 2),
        resources_team2=round(team2_resources, 2),
    )


def calculate_dls_mid_innings(
    team1_runs: int,
    team1_overs: float,
    team2_current_score: int,
    team2_wickets: int,
    team2_balls_faced: int,
    team2_total_overs: float,
    team2_reduced_overs: float,
) -> DLSMidInnings:
    """
    Revised target when team 2's innings is interrupted and shortened.

    Resources lost are those of the overs taken away (original minus
    reduced); the par score scales team 1's runs by what team 2 keeps.
    team1_overs, team2_current_score, team2_wickets and team2_balls_faced
    describe the interruption but do not move the simplified par score.
    """
    resources_at_start = get_resources_remaining(team2_total_overs, 0)
    resources_lost = get_resources_remaining(team2_total_overs - team2_reduced_overs, 0)

    par_score = math.floor(team1_runs * (resources_at_start - resources_lost) / 100)

    return DLSMidInnings(
        revised_target=par_score + 1,
        par_score_at_interruption=par_score,
    )


def minimum_overs(match_format: str) -> int:
    """Minimum overs per side for a valid result, by format."""
    return MINIMUM_OVERS.get(match_format, MINIMUM_OVERS['custom'])
