# SPDX-License-Identifier: Apache-2.0

"""
Scoring domain logic.

Pure functions mapping violation points to area tiers and combining
confirmed violations with approved bonuses into a 0-100 competitive score.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from models.entities import Unit, Issue, BonusRequest, ViolationCode
from models.enums import TaskStatus, BonusStatus, ScoringType, Role

MIN_SCORE = 0.0
MAX_SCORE = 100.0

# Descending thresholds: (min points, coefficient, base score, label)
AREA_TIERS = (
    (1200, 1, 1200, "Loại 1 - Rất phức tạp (≥ 1.200 điểm)"),
    (1000, 2, 1000, "Loại 2 - Phức tạp (1.000 - < 1.200 điểm)"),
    (450, 3, 450, "Loại 3 - Ít phức tạp (450 - < 1.000 điểm)"),
    (0, 4, 50, "Loại 4 - Không phức tạp (< 450 điểm)"),
)


@dataclass(frozen=True)
class AreaTier:
    """Area complexity classification."""
    coefficient: int
    base_score: float
    label: str


@dataclass
class ScoreBreakdown:
    """Intermediate values of a competitive score calculation."""
    ratio_sum: float
    direct_sum: float
    ratio_deduction: float
    bonus_points: float
    raw_score: float
    score: float

    @property
    def display_score(self) -> float:
        return display_score(self.score)


@dataclass
class LeaderboardEntry:
    """Ranked score of one ward unit."""
    unit_id: str
    unit_name: str
    area_coefficient: int
    score: float
    display_score: float
    rank: int


def area_tier(points: float) -> AreaTier:
    """
    Classify cumulative violation points into an area tier.

    Args:
        points: Non-negative violation points

    Returns:
        AreaTier with coefficient, base score and label
    """
    for threshold, coefficient, base_score, label in AREA_TIERS:
        if points >= threshold:
            return AreaTier(coefficient=coefficient, base_score=base_score, label=label)
    # Negative input falls through to the lowest tier
    _, coefficient, base_score, label = AREA_TIERS[-1]
    return AreaTier(coefficient=coefficient, base_score=base_score, label=label)


def clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def display_score(score: float) -> float:
    """Score rounded to 2 decimal places for display."""
    return round(score, 2)


def score_breakdown(
    unit: Unit,
    issues: Iterable[Issue],
    bonuses: Iterable[BonusRequest],
    violation_codes: Optional[Mapping[str, ViolationCode]] = None
) -> ScoreBreakdown:
    """
    Compute the competitive score of a unit with its intermediate values.

    Only CONFIRMED issues and APPROVED bonus requests belonging to the unit
    participate. Issues whose code is not in the catalog contribute nothing.

    Args:
        unit: Scored unit
        issues: Candidate issues (filtered here by unit and status)
        bonuses: Candidate bonus requests (filtered here by unit and status)
        violation_codes: Catalog lookup, defaults to the built-in catalog

    Returns:
        ScoreBreakdown with the full-precision score
    """
    if violation_codes is None:
        from domain.catalog import VIOLATION_CODES_BY_CODE
        violation_codes = VIOLATION_CODES_BY_CODE

    ratio_sum = 0.0
    direct_sum = 0.0
    for issue in issues:
        if issue.ward_id != unit.id or issue.status != TaskStatus.CONFIRMED:
            continue
        code = violation_codes.get(issue.violation_code)
        if code is None:
            continue
        if code.scoring_type == ScoringType.DIRECT:
            direct_sum += code.direct_deduction_factor if code.direct_deduction_factor is not None else 1
        else:
            ratio_sum += issue.penalty_points

    ratio_deduction = (ratio_sum / unit.base_score if unit.base_score > 0 else 0) * 100 * unit.area_coefficient

    bonus_points = sum(
        bonus.final_points or 0
        for bonus in bonuses
        if bonus.ward_id == unit.id and bonus.status == BonusStatus.APPROVED
    )

    raw_score = 100 - (ratio_deduction + direct_sum) + bonus_points

    return ScoreBreakdown(
        ratio_sum=ratio_sum,
        direct_sum=direct_sum,
        ratio_deduction=ratio_deduction,
        bonus_points=bonus_points,
        raw_score=raw_score,
        score=clamp_score(raw_score)
    )


def competitive_score(
    unit: Unit,
    issues: Iterable[Issue],
    bonuses: Iterable[BonusRequest],
    violation_codes: Optional[Mapping[str, ViolationCode]] = None
) -> float:
    """Full-precision competitive score in [0, 100]."""
    return score_breakdown(unit, issues, bonuses, violation_codes).score


def rank_units(
    units: Iterable[Unit],
    issues: Iterable[Issue],
    bonuses: Iterable[BonusRequest],
    violation_codes: Optional[Mapping[str, ViolationCode]] = None
) -> List[LeaderboardEntry]:
    """
    Rank ward units by competitive score, highest first.

    Equal scores share a rank and the next rank is skipped (1, 2, 2, 4).
    """
    issue_list = list(issues)
    bonus_list = list(bonuses)

    scored = []
    for unit in units:
        if unit.role != Role.WARD:
            continue
        score = competitive_score(unit, issue_list, bonus_list, violation_codes)
        scored.append((unit, score))

    scored.sort(key=lambda item: (-item[1], item[0].unit_name))

    entries: List[LeaderboardEntry] = []
    previous_score = None
    rank = 0
    for position, (unit, score) in enumerate(scored, start=1):
        if score != previous_score:
            rank = position
            previous_score = score
        entries.append(LeaderboardEntry(
            unit_id=unit.id,
            unit_name=unit.unit_name,
            area_coefficient=unit.area_coefficient,
            score=score,
            display_score=display_score(score),
            rank=rank
        ))

    return entries


def rank_of(entries: List[LeaderboardEntry]) -> Dict[str, int]:
    """Map unit id to rank."""
    return {entry.unit_id: entry.rank for entry in entries}
