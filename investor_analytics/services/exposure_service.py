from __future__ import annotations

from dataclasses import asdict, dataclass, field

from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.portfolio import PortfolioEntity
from investor_analytics.utils.ratios import safe_div

UNKNOWN = "Unknown"

EXPOSURE_DIMENSIONS: tuple[str, ...] = (
    "fund",
    "geography",
    "manager",
    "vintage",
    "asset_class",
    "sector",
    "currency",
)


@dataclass
class ExposureBucket:
    key: str
    label: str
    amount: float
    percentage: float
    count: int
    limit: float | None = None
    breached: bool = False


@dataclass
class ExposureReport:
    total_nav: float
    dimensions: dict[str, list[ExposureBucket]] = field(default_factory=dict)

    def percentages(self, dimension: str) -> dict[str, float]:
        return {bucket.key: bucket.percentage for bucket in self.dimensions.get(dimension, [])}

    def breaches(self) -> dict[str, list[ExposureBucket]]:
        out: dict[str, list[ExposureBucket]] = {}
        for dimension, buckets in self.dimensions.items():
            flagged = [bucket for bucket in buckets if bucket.breached]
            if flagged:
                out[dimension] = flagged
        return out

    def to_dict(self) -> dict:
        return {
            "total_nav": self.total_nav,
            "dimensions": {dim: [asdict(b) for b in buckets] for dim, buckets in self.dimensions.items()},
        }


def _bucket_key(entity: PortfolioEntity, dimension: str) -> tuple[str, str]:
    if dimension == "fund":
        return entity.id, entity.name
    if dimension == "currency":
        raw = entity.base_currency
    else:
        raw = getattr(entity, dimension, None)
    clean = str(raw).strip() if raw is not None else ""
    key = clean or UNKNOWN
    return key, key


class ExposureService:
    def __init__(self, dimensions: tuple[str, ...] = EXPOSURE_DIMENSIONS) -> None:
        self.dimensions = dimensions

    def bucket(
        self,
        entities: list[PortfolioEntity],
        dimension: str,
        limit: float | None = None,
    ) -> list[ExposureBucket]:
        total_nav = sum(entity.nav for entity in entities)
        grouped: dict[str, ExposureBucket] = {}
        for entity in entities:
            key, label = _bucket_key(entity, dimension)
            bucket = grouped.get(key)
            if bucket is None:
                bucket = ExposureBucket(key=key, label=label, amount=0.0, percentage=0.0, count=0, limit=limit)
                grouped[key] = bucket
            bucket.amount += entity.nav
            bucket.count += 1

        for bucket in grouped.values():
            bucket.percentage = safe_div(bucket.amount, total_nav) * 100 if total_nav > 0 else 0.0
            bucket.breached = limit is not None and bucket.percentage > limit

        return sorted(grouped.values(), key=lambda b: b.amount, reverse=True)

    def analyze(self, entities: list[PortfolioEntity], policy: RiskPolicyConfig | None = None) -> ExposureReport:
        total_nav = sum(entity.nav for entity in entities)
        report = ExposureReport(total_nav=total_nav)
        for dimension in self.dimensions:
            limit = policy.exposure_limit(dimension) if policy is not None else None
            report.dimensions[dimension] = self.bucket(entities, dimension, limit=limit)
        return report
