"""
Census quality scoring engine.

A single pass over the normalized records counts data-quality and
underwriting-risk conditions; the counts are turned into four sub-scores, a
weighted overall score, a risk band and the derived explanations. The engine
never raises: malformed values degrade to 0 / invalid.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, List, Optional, Sequence

from . import rules
from .models import (
    AnalysisResult,
    CensusRecord,
    Issue,
    PredictedImpact,
    RecommendedAction,
    SubScore,
    SubScores,
)

logger = logging.getLogger(__name__)

_NON_MONEY_CHARS = re.compile(r"[^0-9.\-]")
_LEADING_FLOAT = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _leading_float(text: str) -> float:
    match = _LEADING_FLOAT.match(text.strip())
    if match is None:
        return 0.0
    return float(match.group(0))


def parse_money(value: Any) -> float:
    """Parse a salary/coverage value, tolerating currency symbols and separators."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if not value:
        return 0.0
    return _leading_float(_NON_MONEY_CHARS.sub("", str(value)))


def parse_multiple(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if not value:
        return 0.0
    return _leading_float(str(value))


def parse_date(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for fmt in rules.DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Compare everything as naive local time.
    return parsed.replace(tzinfo=None)


def is_valid_date(value: Any) -> bool:
    return parse_date(value) is not None


def days_since(value: Any, now: datetime) -> int:
    parsed = parse_date(value)
    if parsed is None:
        return rules.INVALID_DATE_AGE_DAYS
    delta = abs((now - parsed).total_seconds())
    return math.ceil(delta / 86400)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


def risk_level_for(score: int) -> str:
    if score >= rules.LOW_RISK_MIN_SCORE:
        return "Low"
    if score >= rules.MODERATE_RISK_MIN_SCORE:
        return "Moderate"
    return "High"


def _empty_result() -> AnalysisResult:
    return AnalysisResult(
        overall_score=0,
        risk_level="High",
        total_employees=0,
        sub_scores=SubScores(
            completeness=SubScore(name="Completeness", score=0),
            consistency=SubScore(name="Consistency", score=0),
            eligibility=SubScore(name="Eligibility", score=0),
            eoi_risk=SubScore(name="EOI Risk", score=0),
        ),
        executive_summary="No data found in file.",
        predicted_impact=PredictedImpact(
            clarifications="0",
            eoi_volume=0,
            post_issue_correction_risk="None",
        ),
    )


def analyze_census(records: Sequence[CensusRecord], now: Optional[datetime] = None) -> AnalysisResult:
    """
    Score a census.

    `now` anchors the waiting-period rule; it defaults to the current local
    time. Passing it makes the result fully reproducible.
    """
    total = len(records)
    if total == 0:
        logger.debug("empty census, returning degenerate result")
        return _empty_result()

    if now is None:
        now = datetime.now()

    missing_salary = 0
    missing_dob = 0
    vol_over_max = 0
    zero_salary_coverage = 0
    waiting_period = 0
    # Needs dependent birth dates, which a generic census does not carry.
    ineligible_dependents = 0
    exceeds_gi = 0
    id_counts: Counter = Counter()

    for record in records:
        salary = parse_money(record.annual_salary)
        vol_multiple = parse_multiple(record.voluntary_life_multiple)
        basic_coverage = parse_money(record.basic_life_coverage)

        has_salary = salary > 0
        if not has_salary:
            missing_salary += 1
        if not is_valid_date(record.dob):
            missing_dob += 1

        if vol_multiple > rules.PLAN_MAX_VOL_MULTIPLE:
            vol_over_max += 1
        if vol_multiple > 0 and not has_salary:
            zero_salary_coverage += 1

        if is_valid_date(record.hire_date) and days_since(record.hire_date, now) < rules.WAITING_PERIOD_DAYS:
            waiting_period += 1

        if basic_coverage + salary * vol_multiple > rules.GI_LIMIT:
            exceeds_gi += 1

        if record.employee_id:
            id_counts[record.employee_id] += 1

    duplicates = sum(count - 1 for count in id_counts.values() if count > 1)

    # Completeness: penalties, then a bonus when errors are sparse.
    completeness_errors = missing_salary + missing_dob
    completeness_raw = (
        100
        - missing_salary * rules.PENALTY_MISSING_SALARY
        - missing_dob * rules.PENALTY_MISSING_DOB
    )
    completeness_density = completeness_errors / total
    completeness_bonus = 0
    for max_rate, bonus in rules.COMPLETENESS_DENSITY_BONUS:
        if completeness_density <= max_rate:
            completeness_bonus = bonus
            break
    completeness = _clamp(completeness_raw + completeness_bonus)

    # Consistency: penalties, then a further penalty whenever any error exists.
    consistency_errors = vol_over_max + zero_salary_coverage
    consistency_raw = (
        100
        - vol_over_max * rules.PENALTY_VOL_OVER_MAX
        - zero_salary_coverage * rules.PENALTY_ZERO_SALARY_COV
    )
    consistency_penalty = 0
    if consistency_errors > 0:
        if consistency_errors / total <= rules.CONSISTENCY_LOW_DENSITY:
            consistency_penalty = rules.CONSISTENCY_DENSITY_PENALTY_LOW
        else:
            consistency_penalty = rules.CONSISTENCY_DENSITY_PENALTY_HIGH
    consistency = _clamp(consistency_raw - consistency_penalty)

    eligibility = _clamp(
        100
        - waiting_period * rules.PENALTY_WAITING_PERIOD
        - ineligible_dependents * rules.PENALTY_INELIGIBLE_DEP
    )

    eoi_rate_percent = exceeds_gi / total * 100
    eoi_risk = _clamp(
        100
        - eoi_rate_percent * rules.EOI_RATE_FACTOR
        - missing_salary * rules.PENALTY_EOI_MISSING_SALARY
    )

    weighted = (
        completeness * rules.WEIGHTS["completeness"]
        + consistency * rules.WEIGHTS["consistency"]
        + eligibility * rules.WEIGHTS["eligibility"]
        + eoi_risk * rules.WEIGHTS["eoi_risk"]
    )
    overall = min(100, max(0, _round_half_up(weighted)))
    risk_level = risk_level_for(overall)

    anomalies: List[Issue] = []
    if duplicates > 0:
        anomalies.append(Issue(
            type="Duplicate IDs", count=duplicates, severity="High",
            description="Duplicate employee IDs found",
        ))
    if missing_salary > total * rules.MISSING_SALARY_ANOMALY_RATE:
        anomalies.append(Issue(
            type="Missing Salaries", count=missing_salary, severity="High",
            description="High volume of missing salaries",
        ))

    drivers: List[str] = []
    if exceeds_gi > 0:
        drivers.append(f"{exceeds_gi} employees exceed GI ($150k) → EOI required")
    if missing_salary > 0:
        drivers.append(f"{missing_salary} missing salary records")
    if waiting_period > 0:
        drivers.append(f"{waiting_period} employees in waiting period")
    if vol_over_max > 0:
        drivers.append(f"{vol_over_max} coverage elections exceeding plan max (5x)")
    if duplicates > 0:
        drivers.append(f"{duplicates} duplicate IDs")

    if overall < rules.MODERATE_RISK_MIN_SCORE:
        clarifications, correction_risk = "6+", "High"
    elif overall < rules.LOW_RISK_MIN_SCORE:
        clarifications, correction_risk = "4–6", "Medium"
    else:
        clarifications, correction_risk = "1-2", "Low"

    actions: List[RecommendedAction] = []
    if missing_salary > 0:
        actions.append(RecommendedAction(area="Missing Salary", recommendation="Employer clarification upfront"))
    if exceeds_gi > 0:
        actions.append(RecommendedAction(area="EOI Volume", recommendation="Pre-emptive EOI communication"))
    if duplicates > 0:
        actions.append(RecommendedAction(area="Duplicates", recommendation="Deduplicate before enrollment"))
    if vol_over_max > 0:
        actions.append(RecommendedAction(area="Plan Limits", recommendation="Cap voluntary elections at 5x"))
    if not actions:
        actions.append(RecommendedAction(area="General", recommendation="Proceed to enrollment"))

    summary = (
        f"This census demonstrates {risk_level.lower()} enrollment risk (Score: {overall}). "
        f"Primary drivers include {exceeds_gi} EOI cases and {missing_salary} missing data points."
    )

    logger.debug(
        "census scored: employees=%d overall=%d risk=%s missing_salary=%d exceeds_gi=%d duplicates=%d",
        total, overall, risk_level, missing_salary, exceeds_gi, duplicates,
    )

    return AnalysisResult(
        overall_score=overall,
        risk_level=risk_level,
        total_employees=total,
        sub_scores=SubScores(
            completeness=SubScore(
                name="Completeness",
                score=_round_half_up(completeness),
                issues=[
                    Issue(type="Missing Salary", count=missing_salary, severity="High",
                          description="Salary field is empty or null"),
                    Issue(type="Missing DOB", count=missing_dob, severity="Medium",
                          description="Date of birth missing"),
                ],
            ),
            consistency=SubScore(
                name="Consistency",
                score=_round_half_up(consistency),
                issues=[
                    Issue(type="Voluntary > Max", count=vol_over_max, severity="High",
                          description="Voluntary multiple > plan max (5x)"),
                    Issue(type="Zero Salary Coverage", count=zero_salary_coverage, severity="High",
                          description="Coverage elected with $0 salary"),
                ],
            ),
            eligibility=SubScore(
                name="Eligibility",
                score=_round_half_up(eligibility),
                issues=[
                    Issue(type="Waiting Period", count=waiting_period, severity="Medium",
                          description="Employees in waiting period (<30 days)"),
                    Issue(type="Ineligible Dependents", count=ineligible_dependents, severity="Medium",
                          description="Dependents exceeding age limits (Note: Data unavailable)"),
                ],
            ),
            eoi_risk=SubScore(
                name="EOI Risk",
                score=_round_half_up(eoi_risk),
                issues=[
                    Issue(type="Exceeding GI", count=exceeds_gi, severity="High",
                          description="Employees exceeding Guaranteed Issue ($150k)"),
                    Issue(type="EOI Rate", count=_round_half_up(eoi_rate_percent), severity="Medium",
                          description="% of group requiring EOI"),
                ],
            ),
        ),
        anomalies=anomalies,
        executive_summary=summary,
        top_risk_drivers=drivers[: rules.MAX_RISK_DRIVERS],
        predicted_impact=PredictedImpact(
            clarifications=f"{clarifications} cycles",
            eoi_volume=math.ceil(exceeds_gi * rules.EOI_VOLUME_BUFFER),
            post_issue_correction_risk=correction_risk,
        ),
        recommended_actions=actions,
    )
