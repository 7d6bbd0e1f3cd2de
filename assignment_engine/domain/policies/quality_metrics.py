"""Book quality metrics — how evenly a set of owners spreads the book.

The same measurement runs twice around a pass: once with the current owners
and once with the proposed ones. Distribution figures cover the normal
(non-strategic, eligible) reps only; strategic books are not balanced.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from statistics import fmean, pstdev

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.policies.capacity_tracker import CapacityState, CapacityTracker
from assignment_engine.domain.value_objects.capacity_limits import CapacityLimits
from assignment_engine.domain.value_objects.enums import Severity
from assignment_engine.domain.value_objects.territory_map import TerritoryMap, same_region

ARR_CV_TARGET = 0.15
ARR_CV_WARN = 0.20
ARR_CV_HIGH = 0.30
# Average CV at which the distribution score bottoms out
CV_FLOOR = 0.5

OwnerOf = Callable[[Account], str | None]


@dataclass(frozen=True)
class DistributionStats:
    mean: float = 0.0
    std_dev: float = 0.0
    cv: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0

    @property
    def spread(self) -> float:
        return self.maximum - self.minimum

    @classmethod
    def from_values(cls, values: list[float]) -> DistributionStats:
        if not values:
            return cls()
        mean = fmean(values)
        std_dev = pstdev(values, mu=mean)
        return cls(
            mean=mean,
            std_dev=std_dev,
            cv=std_dev / mean if mean else 0.0,
            minimum=min(values),
            maximum=max(values),
        )


@dataclass(frozen=True)
class QualityWarning:
    severity: Severity
    category: str
    message: str
    metric: str
    value: float
    threshold: float
    affected_reps: tuple[str, ...] = ()


@dataclass
class QualityMetrics:
    arr: DistributionStats
    cre: DistributionStats
    tier1: DistributionStats
    tier2: DistributionStats
    renewal_cv_by_quarter: dict[int, float]
    reps_over_cre_limit: int
    continuity_rate: float
    geography_match_rate: float
    strategic_compliance: float
    parent_child_alignment: float
    distribution_score: int
    compliance_score: int
    risk_score: int
    overall_score: int
    warnings: list[QualityWarning] = field(default_factory=list)

    @property
    def worst_quarter_cv(self) -> float:
        return max(self.renewal_cv_by_quarter.values(), default=0.0)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["arr"]["spread"] = self.arr.spread
        data["worst_quarter_cv"] = self.worst_quarter_cv
        data["warnings"] = [{**asdict(w), "severity": w.severity.value} for w in self.warnings]
        return data


@dataclass(frozen=True)
class MetricChange:
    metric: str
    before: float
    after: float
    change: float
    change_percent: float
    improved: bool


@dataclass
class QualityComparison:
    before: QualityMetrics
    after: QualityMetrics
    changes: list[MetricChange]
    overall_improvement: int

    def as_dict(self) -> dict:
        return {
            "before": self.before.as_dict(),
            "after": self.after.as_dict(),
            "changes": [asdict(c) for c in self.changes],
            "overall_improvement": self.overall_improvement,
        }


def _rate(hits: int, total: int) -> float:
    return hits / total if total else 1.0


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def normal_reps(reps: list[SalesRep]) -> list[SalesRep]:
    return [r for r in reps if r.is_eligible and not r.is_strategic_rep]


def calculate_quality(
    accounts: list[Account],
    reps: list[SalesRep],
    territory_map: TerritoryMap,
    limits: CapacityLimits,
    owner_of: OwnerOf,
) -> QualityMetrics:
    """Measure the book as owned by ``owner_of(account)``.

    Raises ValueError when there is no normal rep to measure against.
    """
    pool = normal_reps(reps)
    if not pool:
        raise ValueError("No normal reps to measure book quality against")

    reps_by_id = {r.rep_id: r for r in reps}
    tracker = CapacityTracker(limits)
    workloads: dict[str, CapacityState] = tracker.initialize(pool)
    for account in accounts:
        owner_id = owner_of(account)
        if owner_id in workloads:
            tracker.commit(owner_id, account.to_load())

    states = [workloads[r.rep_id] for r in pool]
    arr = DistributionStats.from_values([s.customer_arr for s in states])
    cre = DistributionStats.from_values([float(s.cre_count) for s in states])
    tier1 = DistributionStats.from_values([float(s.tier1_count) for s in states])
    tier2 = DistributionStats.from_values([float(s.tier2_count) for s in states])
    renewal_cv = {
        q: DistributionStats.from_values([float(s.renewals_by_quarter.get(q, 0)) for s in states]).cv
        for q in (1, 2, 3, 4)
    }

    warnings: list[QualityWarning] = []
    if arr.cv > ARR_CV_WARN:
        warnings.append(
            QualityWarning(
                severity=Severity.HIGH if arr.cv > ARR_CV_HIGH else Severity.MEDIUM,
                category="distribution",
                message=f"ARR distribution has {arr.cv * 100:.1f}% coefficient of variation "
                f"(target < {ARR_CV_TARGET * 100:.0f}%)",
                metric="arr_cv",
                value=arr.cv,
                threshold=ARR_CV_TARGET,
            )
        )
    over_cre = [r for r in pool if workloads[r.rep_id].cre_count > limits.max_cre_per_rep]
    if over_cre:
        warnings.append(
            QualityWarning(
                severity=Severity.HIGH,
                category="risk",
                message=f"{len(over_cre)} reps exceed CRE limit of {limits.max_cre_per_rep}",
                metric="reps_over_cre_limit",
                value=len(over_cre),
                threshold=0,
                affected_reps=tuple(r.name for r in over_cre),
            )
        )

    continuity = [a for a in accounts if a.current_owner_id]
    continuity_rate = _rate(sum(owner_of(a) == a.current_owner_id for a in continuity), len(continuity))

    geo_hits = geo_total = 0
    for account in accounts:
        region = territory_map.region_for(account.territory)
        owner = reps_by_id.get(owner_of(account) or "")
        if region and owner is not None and not owner.is_strategic_rep:
            geo_total += 1
            geo_hits += same_region(owner.region, region)
    geography_match_rate = _rate(geo_hits, geo_total)

    def is_strategic(rep_id: str | None) -> bool:
        rep = reps_by_id.get(rep_id or "")
        return rep is not None and rep.is_strategic_rep

    strategic = [a for a in accounts if is_strategic(a.current_owner_id)]
    strategic_compliance = _rate(sum(is_strategic(owner_of(a)) for a in strategic), len(strategic))

    by_id = {a.account_id: a for a in accounts}
    children = [a for a in accounts if a.ultimate_parent_id in by_id and a.ultimate_parent_id != a.account_id]
    parent_child_alignment = _rate(
        sum(owner_of(c) == owner_of(by_id[c.ultimate_parent_id]) for c in children),
        len(children),
    )

    avg_cv = (arr.cv + cre.cv + tier1.cv + tier2.cv) / 4
    distribution_score = _clamp(100 * (1 - avg_cv / CV_FLOOR))
    compliance_score = round(
        (continuity_rate * 0.4 + geography_match_rate * 0.3 + strategic_compliance * 0.2 + parent_child_alignment * 0.1)
        * 100
    )
    risk_score = _clamp(100 * (1 - len(over_cre) / len(pool)) * (1 - cre.cv))
    overall_score = round(distribution_score * 0.40 + compliance_score * 0.35 + risk_score * 0.25)

    return QualityMetrics(
        arr=arr,
        cre=cre,
        tier1=tier1,
        tier2=tier2,
        renewal_cv_by_quarter=renewal_cv,
        reps_over_cre_limit=len(over_cre),
        continuity_rate=continuity_rate,
        geography_match_rate=geography_match_rate,
        strategic_compliance=strategic_compliance,
        parent_child_alignment=parent_child_alignment,
        distribution_score=round(distribution_score),
        compliance_score=compliance_score,
        risk_score=round(risk_score),
        overall_score=overall_score,
        warnings=warnings,
    )


def _change(metric: str, before: float, after: float, lower_is_better: bool) -> MetricChange:
    change = before - after if lower_is_better else after - before
    return MetricChange(
        metric=metric,
        before=before,
        after=after,
        change=change,
        change_percent=change / (before or 1) * 100,
        improved=change > 0,
    )


def compare_quality(before: QualityMetrics, after: QualityMetrics) -> QualityComparison:
    changes = [
        _change("ARR CV", before.arr.cv, after.arr.cv, lower_is_better=True),
        _change("CRE CV", before.cre.cv, after.cre.cv, lower_is_better=True),
        _change("Distribution Score", before.distribution_score, after.distribution_score, lower_is_better=False),
        _change("Compliance Score", before.compliance_score, after.compliance_score, lower_is_better=False),
        _change("Overall Score", before.overall_score, after.overall_score, lower_is_better=False),
    ]
    improved = sum(c.improved for c in changes)
    # -100 when nothing improved, +100 when everything did
    overall = round(improved / len(changes) * 100 - 50) * 2
    return QualityComparison(before=before, after=after, changes=changes, overall_improvement=overall)
