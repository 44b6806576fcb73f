# SPDX-License-Identifier: Apache-2.0

"""
Read-only dashboard aggregates: leaderboard and per-unit statistics.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from opentelemetry import trace

from models.base import utc_now
from models.enums import TaskStatus
from domain import scoring
from domain.issues import is_sla_breached
from services.store import LocalStore

tracer = trace.get_tracer(__name__)


class DashboardService:
    """Scores and ranks ward units from the current store contents."""

    def __init__(self, store: LocalStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def leaderboard(self) -> List[scoring.LeaderboardEntry]:
        with tracer.start_as_current_span("dashboard.leaderboard") as span:
            root = self.store.get_store()
            entries = scoring.rank_units(
                root.users.values(), root.issues.values(), root.bonus_requests.values()
            )
            span.set_attribute("dashboard.units", len(entries))
            return entries

    def unit_stats(self, unit_id: str) -> Optional[Dict[str, Any]]:
        """
        Issue counts, score and rank of one unit.

        Rank is only set for ward units. Returns None for unknown units.
        """
        root = self.store.get_store()
        unit = root.users.get(unit_id)
        if unit is None:
            return None

        now = self.clock()
        issues = [issue for issue in root.issues.values() if issue.ward_id == unit_id]
        breakdown = scoring.score_breakdown(unit, issues, root.bonus_requests.values())
        ranks = scoring.rank_of(scoring.rank_units(
            root.users.values(), root.issues.values(), root.bonus_requests.values()
        ))

        return {
            "unitId": unit.id,
            "unitName": unit.unit_name,
            "areaCoefficient": unit.area_coefficient,
            "total": len(issues),
            "slaBreach": sum(1 for issue in issues if is_sla_breached(issue, now)),
            "pendingConfirm": sum(1 for issue in issues if issue.status == TaskStatus.RESOLVED),
            "score": breakdown.display_score,
            "rank": ranks.get(unit.id)
        }
