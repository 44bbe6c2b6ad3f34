"""Temporal pattern evaluation.

Decides whether a worker's recent history matches a pattern such as
"worked 3 consecutive Sundays" or "more than 40 hours in any 5 worked
days". Sources:

  day_of_week, shift_type, hours_threshold — approved time entries
  station, role                            — completed/confirmed shifts
  combined                                 — sub-patterns joined by AND/OR

The lookback window is ``[as_of - lookback_period_days, as_of]``.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import date, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.constants import (
    ApprovalState,
    ComparisonOperator,
    DayOfWeek,
    LogicalOperator,
    PatternType,
    ShiftStatus,
)
from workforce.common.crud import scoped_select
from workforce.common.dates import today
from workforce.common.exceptions import AppException, ValidationException
from workforce.core_hr.models import Employee
from workforce.schedules.models import Shift
from workforce.temporal_patterns.schemas import (
    PatternEvaluation,
    PatternTestResult,
    TemporalPattern,
    WorkerPatternResult,
)
from workforce.timesheets.models import TimeEntry

logger = logging.getLogger(__name__)

WEEK_GAP = 7
DAY_GAP = 1
EQUALS_TOLERANCE = 0.01

_WORKED_SHIFT = (ShiftStatus.completed.value, ShiftStatus.confirmed.value)
_WEEKDAYS = [d.value for d in DayOfWeek]


# ── Pure helpers ────────────────────────────────────────────────────

def count_consecutive(dates: Sequence[date], gap_days: int) -> dict[str, Any]:
    """Find runs of *dates* spaced exactly *gap_days* apart.

    Duplicate dates are ignored. Runs shorter than two are not reported;
    reported runs are ordered longest first.
    """
    ordered = sorted(set(dates))
    if not ordered:
        return {"max_consecutive": 0, "consecutive_runs": [], "matching_dates": []}

    runs: list[list[date]] = []
    current = [ordered[0]]
    best = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == gap_days:
            current.append(curr)
            best = max(best, len(current))
        else:
            runs.append(current)
            current = [curr]
    runs.append(current)

    reported = sorted((r for r in runs if len(r) >= 2), key=len, reverse=True)
    return {
        "max_consecutive": best,
        "consecutive_runs": [
            {
                "start_date": r[0].isoformat(),
                "end_date": r[-1].isoformat(),
                "count": len(r),
                "dates": [d.isoformat() for d in r],
            }
            for r in reported
        ],
        "matching_dates": [d.isoformat() for d in ordered],
    }


def compare_value(value: float, operator: str, threshold: float) -> bool:
    if operator == ComparisonOperator.greater_than.value:
        return value > threshold
    if operator == ComparisonOperator.less_than.value:
        return value < threshold
    if operator == ComparisonOperator.equals.value:
        return abs(value - threshold) < EQUALS_TOLERANCE
    if operator == ComparisonOperator.greater_or_equal.value:
        return value >= threshold
    if operator == ComparisonOperator.less_or_equal.value:
        return value <= threshold
    raise ValidationException.for_field("comparison_operator", f"Invalid comparison operator: {operator}")


def _lookback_start(pattern: TemporalPattern, as_of: date) -> date:
    return as_of - timedelta(days=pattern.lookback_period_days)


def _consecutive_metadata(
    pattern: TemporalPattern,
    as_of: date,
    dates: Sequence[date],
    gap_days: int,
    **extra: Any,
) -> tuple[bool, dict[str, Any]]:
    counted = count_consecutive(dates, gap_days)
    qualified = counted["max_consecutive"] >= pattern.consecutive_count
    return qualified, {
        **extra,
        "required_consecutive": pattern.consecutive_count,
        "actual_max_consecutive": counted["max_consecutive"],
        "total_matching_days": len(counted["matching_dates"]),
        "lookback_period_days": pattern.lookback_period_days,
        "lookback_start": _lookback_start(pattern, as_of).isoformat(),
        "consecutive_runs": counted["consecutive_runs"],
        "matching_dates": counted["matching_dates"],
    }


# ═════════════════════════════════════════════════════════════════════
# TemporalPatternService
# ═════════════════════════════════════════════════════════════════════


class TemporalPatternService:

    # ── Data access ─────────────────────────────────────────────────

    @staticmethod
    async def _approved_entries(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Sequence[TimeEntry]:
        result = await db.execute(
            scoped_select(TimeEntry, organization_id)
            .where(
                TimeEntry.employee_id == employee_id,
                TimeEntry.status == ApprovalState.approved.value,
                TimeEntry.entry_date >= start,
                TimeEntry.entry_date <= end,
            )
            .order_by(TimeEntry.entry_date),
        )
        return result.scalars().all()

    @staticmethod
    async def _worked_shift_dates(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        column: Any,
        value: uuid.UUID,
        start: date,
        end: date,
    ) -> list[date]:
        query = (
            select(Shift.shift_date)
            .distinct()
            .where(
                Shift.organization_id == organization_id,
                Shift.deleted_at.is_(None),
                Shift.employee_id == employee_id,
                column == value,
                Shift.status.in_(_WORKED_SHIFT),
                Shift.shift_date >= start,
                Shift.shift_date <= end,
            )
            .order_by(Shift.shift_date)
        )
        return list((await db.execute(query)).scalars().all())

    # ── Per-type evaluators ─────────────────────────────────────────

    @staticmethod
    async def _day_of_week(db, organization_id, employee_id, pattern, as_of):
        entries = await TemporalPatternService._approved_entries(
            db, organization_id, employee_id, _lookback_start(pattern, as_of), as_of,
        )
        weekday = _WEEKDAYS.index(pattern.day_of_week)
        dates = [e.entry_date for e in entries if e.entry_date.weekday() == weekday]
        return _consecutive_metadata(
            pattern, as_of, dates, WEEK_GAP, day_of_week=pattern.day_of_week,
        )

    @staticmethod
    async def _shift_type(db, organization_id, employee_id, pattern, as_of):
        entries = await TemporalPatternService._approved_entries(
            db, organization_id, employee_id, _lookback_start(pattern, as_of), as_of,
        )
        dates = [e.entry_date for e in entries if e.shift_type_id == pattern.shift_type_id]
        return _consecutive_metadata(
            pattern, as_of, dates, DAY_GAP, shift_type_id=str(pattern.shift_type_id),
        )

    @staticmethod
    async def _station(db, organization_id, employee_id, pattern, as_of):
        dates = await TemporalPatternService._worked_shift_dates(
            db, organization_id, employee_id, Shift.station_id, pattern.station_id,
            _lookback_start(pattern, as_of), as_of,
        )
        return _consecutive_metadata(
            pattern, as_of, dates, DAY_GAP, station_id=str(pattern.station_id),
        )

    @staticmethod
    async def _role(db, organization_id, employee_id, pattern, as_of):
        dates = await TemporalPatternService._worked_shift_dates(
            db, organization_id, employee_id, Shift.role_id, pattern.role_id,
            _lookback_start(pattern, as_of), as_of,
        )
        return _consecutive_metadata(
            pattern, as_of, dates, DAY_GAP, role_id=str(pattern.role_id),
        )

    @staticmethod
    async def _hours_threshold(db, organization_id, employee_id, pattern, as_of):
        """Rolling windows of ``consecutive_count`` worked entries."""
        entries = await TemporalPatternService._approved_entries(
            db, organization_id, employee_id, _lookback_start(pattern, as_of), as_of,
        )
        size = pattern.consecutive_count
        periods = []
        for i in range(len(entries) - size + 1):
            window = entries[i:i + size]
            total = sum(float(e.worked_hours or 0) for e in window)
            if compare_value(total, pattern.comparison_operator, pattern.hours_threshold):
                periods.append({
                    "start_date": window[0].entry_date.isoformat(),
                    "end_date": window[-1].entry_date.isoformat(),
                    "total_hours": round(total, 2),
                    "days_in_period": len(window),
                })
        return bool(periods), {
            "hours_threshold": pattern.hours_threshold,
            "comparison_operator": pattern.comparison_operator,
            "consecutive_days": size,
            "lookback_period_days": pattern.lookback_period_days,
            "lookback_start": _lookback_start(pattern, as_of).isoformat(),
            "qualifying_periods": periods,
        }

    @staticmethod
    async def _combined(db, organization_id, employee_id, pattern, as_of):
        results = [
            await TemporalPatternService.evaluate_pattern(db, organization_id, employee_id, sub, as_of)
            for sub in pattern.combined_patterns
        ]
        if pattern.logical_operator == LogicalOperator.AND.value:
            qualified = all(r.qualified for r in results)
        else:
            qualified = any(r.qualified for r in results)
        return qualified, {
            "logical_operator": pattern.logical_operator,
            "sub_pattern_results": [
                {"pattern_type": r.pattern_type, "qualified": r.qualified, "metadata": r.metadata}
                for r in results
            ],
        }

    # ── Public API ──────────────────────────────────────────────────

    @staticmethod
    async def evaluate_pattern(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        pattern: TemporalPattern,
        as_of: Optional[date] = None,
    ) -> PatternEvaluation:
        """Evaluate *pattern* for one employee as of a date (default today)."""
        as_of = as_of or today()
        started = time.perf_counter()

        evaluator = _EVALUATORS[pattern.pattern_type]
        qualified, metadata = await evaluator(db, organization_id, employee_id, pattern, as_of)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(
            "Pattern evaluated org=%s employee=%s type=%s qualified=%s ms=%s",
            organization_id, employee_id, pattern.pattern_type, qualified, elapsed_ms,
        )
        return PatternEvaluation(
            qualified=qualified,
            pattern_type=pattern.pattern_type,
            metadata=metadata,
            execution_time_ms=elapsed_ms,
            evaluated_at=as_of,
        )

    @staticmethod
    async def test_pattern(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pattern: TemporalPattern,
        employee_ids: Sequence[uuid.UUID],
        as_of: Optional[date] = None,
    ) -> PatternTestResult:
        """Preview a pattern against several workers."""
        result = await db.execute(
            scoped_select(Employee, organization_id).where(Employee.id.in_(list(employee_ids))),
        )
        employees = {e.id: e for e in result.scalars().all()}

        results: list[WorkerPatternResult] = []
        for employee_id in employee_ids:
            employee = employees.get(employee_id)
            details = {
                "employee_id": employee_id,
                "employee_number": employee.employee_number if employee else None,
                "first_name": employee.first_name if employee else None,
                "last_name": employee.last_name if employee else None,
                "full_name": f"{employee.first_name} {employee.last_name}" if employee else "Unknown",
                "job_title": employee.job_title if employee else None,
            }
            try:
                evaluation = await TemporalPatternService.evaluate_pattern(
                    db, organization_id, employee_id, pattern, as_of,
                )
            except AppException as exc:
                logger.error(
                    "Pattern test failed org=%s employee=%s error=%s",
                    organization_id, employee_id, exc.detail,
                )
                results.append(WorkerPatternResult(**details, qualified=False, error=exc.detail))
            else:
                results.append(WorkerPatternResult(**details, **evaluation.model_dump()))

        qualified = [r for r in results if r.qualified]
        not_qualified = [r for r in results if not r.qualified]
        return PatternTestResult(
            total_tested=len(employee_ids),
            qualified_count=len(qualified),
            not_qualified_count=len(employee_ids) - len(qualified),
            qualified_workers=qualified,
            not_qualified_workers=not_qualified,
            all_results=results,
        )

    @staticmethod
    async def is_satisfied(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
        condition: Optional[dict[str, Any]],
        as_of: date,
    ) -> bool:
        """Whether a stored pattern condition holds; no condition always holds."""
        if not condition:
            return True
        pattern = TemporalPattern.model_validate(condition)
        evaluation = await TemporalPatternService.evaluate_pattern(
            db, organization_id, employee_id, pattern, as_of,
        )
        return evaluation.qualified


_EVALUATORS = {
    PatternType.day_of_week.value: TemporalPatternService._day_of_week,
    PatternType.shift_type.value: TemporalPatternService._shift_type,
    PatternType.station.value: TemporalPatternService._station,
    PatternType.role.value: TemporalPatternService._role,
    PatternType.hours_threshold.value: TemporalPatternService._hours_threshold,
    PatternType.combined.value: TemporalPatternService._combined,
}
