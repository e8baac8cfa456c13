from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field

from investor_analytics.models.portfolio import PortfolioEntity
from investor_analytics.services.normalization_service import FxConverter
from investor_analytics.utils.ratios import derive_ratios, safe_div
from investor_analytics.utils.time import as_utc, utc_now
from investor_analytics.utils.validation import allowed_ids

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
PATH_SEPARATOR = " / "

# Report dimension id -> PortfolioEntity attribute.
DIMENSION_FIELDS: dict[str, str] = {
    "name": "name",
    "vintage": "vintage",
    "domicile": "geography",
    "region": "region",
    "manager": "manager",
    "investment_type": "investment_type",
    "entity_type": "entity_type",
    "asset_class": "asset_class",
    "strategy": "strategy",
    "sector": "sector",
    "base_currency": "base_currency",
}

METRIC_FIELDS: tuple[str, ...] = (
    "commitment",
    "paid_in",
    "nav",
    "unfunded",
    "distributions",
    "total_value",
    "tvpi",
    "dpi",
    "rvpi",
    "pic",
    "irr",
    "current_value",
)

SUMMED_FIELDS: tuple[str, ...] = ("commitment", "paid_in", "nav", "distributions")


@dataclass
class ReportFilters:
    fund_ids: list[str] = field(default_factory=list)
    investment_ids: list[str] = field(default_factory=list)
    vintages: list[int] = field(default_factory=list)
    vintage_min: int | None = None
    vintage_max: int | None = None
    domicile: list[str] = field(default_factory=list)
    manager: list[str] = field(default_factory=list)
    strategy: list[str] = field(default_factory=list)
    sector: list[str] = field(default_factory=list)

    def matches(self, entity: PortfolioEntity) -> bool:
        if entity.is_fund and self.fund_ids and entity.id not in self.fund_ids:
            return False
        if not entity.is_fund and self.investment_ids and entity.id not in self.investment_ids:
            return False
        if self.vintages and entity.vintage not in self.vintages:
            return False
        if self.vintage_min is not None and (entity.vintage is None or entity.vintage < self.vintage_min):
            return False
        if self.vintage_max is not None and (entity.vintage is None or entity.vintage > self.vintage_max):
            return False
        for values, attr in (
            (self.domicile, entity.geography),
            (self.manager, entity.manager),
            (self.strategy, entity.strategy),
            (self.sector, entity.sector),
        ):
            if values and _fold(attr) not in {_fold(value) for value in values}:
                return False
        return True


def _fold(value) -> str:
    return str(value).strip().casefold() if value is not None else ""


@dataclass
class GroupNode:
    index: int
    parent: int | None
    depth: int
    key: str
    path: list[str]
    children: list[int] = field(default_factory=list)
    child_by_key: dict[str, int] = field(default_factory=dict)
    entities: list[PortfolioEntity] = field(default_factory=list)
    totals: dict[str, float] = field(default_factory=dict)
    irr_weight: float = 0.0
    entity_count: int = 0


class GroupTree:
    """Arena of group nodes; index 0 is the synthetic root."""

    def __init__(self, dimensions: list[str]) -> None:
        self.dimensions = dimensions
        self.nodes: list[GroupNode] = [GroupNode(index=0, parent=None, depth=0, key="", path=[])]

    @staticmethod
    def group_value(entity: PortfolioEntity, dimension: str) -> str:
        raw = getattr(entity, DIMENSION_FIELDS[dimension], None)
        clean = str(raw).strip() if raw is not None else ""
        return clean or UNKNOWN

    def _child(self, parent: GroupNode, key: str) -> GroupNode:
        index = parent.child_by_key.get(key)
        if index is not None:
            return self.nodes[index]
        node = GroupNode(
            index=len(self.nodes),
            parent=parent.index,
            depth=parent.depth + 1,
            key=key,
            path=[*parent.path, key],
        )
        self.nodes.append(node)
        parent.children.append(node.index)
        parent.child_by_key[key] = node.index
        return node

    def insert(self, entity: PortfolioEntity) -> None:
        node = self.nodes[0]
        for dimension in self.dimensions:
            node = self._child(node, self.group_value(entity, dimension))
        node.entities.append(entity)

    def aggregate(self) -> None:
        # Children are always created after their parent, so walking the arena
        # backwards finishes every subtree before its parent is touched.
        for node in reversed(self.nodes):
            totals = {name: 0.0 for name in SUMMED_FIELDS}
            irr_weight = 0.0
            count = 0
            for entity in node.entities:
                for name in SUMMED_FIELDS:
                    totals[name] += getattr(entity, name)
                irr_weight += entity.irr * entity.paid_in
                count += 1
            for child_index in node.children:
                child = self.nodes[child_index]
                for name in SUMMED_FIELDS:
                    totals[name] += child.totals[name]
                irr_weight += child.irr_weight
                count += child.entity_count
            node.totals = totals
            node.irr_weight = irr_weight
            node.entity_count = count

    def flatten(self) -> list[GroupNode]:
        ordered: list[GroupNode] = []
        stack = list(reversed(self.nodes[0].children))
        while stack:
            node = self.nodes[stack.pop()]
            ordered.append(node)
            stack.extend(reversed(node.children))
        return ordered


def metric_values(totals: dict[str, float], irr_weight: float) -> dict[str, float]:
    values = dict(totals)
    values.update(
        derive_ratios(totals["commitment"], totals["paid_in"], totals["nav"], totals["distributions"])
    )
    values["irr"] = safe_div(irr_weight, totals["paid_in"])
    values["current_value"] = totals["nav"]
    return values


@dataclass
class ReportResult:
    rows: list[dict]
    summary: dict
    metrics: list[str]
    dimensions: list[str]
    reporting_currency: str
    fx_rates: dict[str, float]
    as_of: dt.datetime | None
    generated_at: dt.datetime
    chart_config: dict
    benchmark: dict = field(default_factory=lambda: {"name": None, "series": []})

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "summary": self.summary,
            "metrics": self.metrics,
            "dimensions": self.dimensions,
            "reporting_currency": self.reporting_currency,
            "fx_rates": self.fx_rates,
            "as_of": self.as_of,
            "generated_at": self.generated_at,
            "chart_config": self.chart_config,
            "benchmark": self.benchmark,
        }


class ReportingService:
    def __init__(self, fx: FxConverter | None = None) -> None:
        self.fx = fx or FxConverter()

    @staticmethod
    def summarize(entities: list[PortfolioEntity]) -> dict:
        funds = [e for e in entities if e.is_fund]
        directs = [e for e in entities if not e.is_fund]
        totals = {name: sum(getattr(e, name) for e in entities) for name in SUMMED_FIELDS}
        ratios = derive_ratios(totals["commitment"], totals["paid_in"], totals["nav"], totals["distributions"])
        return {
            "fund_count": len(funds),
            "direct_investment_count": len(directs),
            "total_commitment": totals["commitment"],
            "total_paid_in": totals["paid_in"],
            "total_nav": totals["nav"],
            "total_distributions": totals["distributions"],
            "total_unfunded": ratios["unfunded"],
            "avg_tvpi": ratios["tvpi"],
            "avg_dpi": ratios["dpi"],
            "direct_investment_value": sum(e.nav for e in directs),
        }

    @staticmethod
    def _flat_rows(entities: list[PortfolioEntity], metrics: list[str]) -> list[dict]:
        rows: list[dict] = []
        for entity in entities:
            values = metric_values(
                {name: getattr(entity, name) for name in SUMMED_FIELDS},
                entity.irr * entity.paid_in,
            )
            row: dict = {"name": entity.name}
            row.update({metric: values[metric] for metric in metrics})
            rows.append(row)
        return rows

    @staticmethod
    def _grouped_rows(entities: list[PortfolioEntity], dimensions: list[str], metrics: list[str]) -> list[dict]:
        tree = GroupTree(dimensions)
        for entity in entities:
            tree.insert(entity)
        tree.aggregate()

        rows: list[dict] = []
        for node in tree.flatten():
            values = metric_values(node.totals, node.irr_weight)
            row: dict = {
                "name": PATH_SEPARATOR.join(node.path),
                "group": node.key,
                "dimension": dimensions[node.depth - 1],
                "depth": node.depth,
                "path": list(node.path),
                "entity_count": node.entity_count,
            }
            row.update({metric: values[metric] for metric in metrics})
            rows.append(row)
        return rows

    def run(
        self,
        entities: list[PortfolioEntity],
        metrics: list[str],
        dimensions: list[str] | None = None,
        filters: ReportFilters | None = None,
        reporting_currency: str = "USD",
        chart_type: str = "bar",
    ) -> ReportResult:
        metric_ids = allowed_ids(metrics, METRIC_FIELDS)
        dimension_ids = allowed_ids(dimensions, DIMENSION_FIELDS)
        filters = filters or ReportFilters()
        selected = [entity for entity in entities if filters.matches(entity)]

        if dimension_ids:
            rows = self._grouped_rows(selected, dimension_ids, metric_ids)
        else:
            rows = self._flat_rows(selected, metric_ids)

        stamps = [as_utc(entity.updated_at) for entity in selected if entity.updated_at is not None]
        logger.info(
            "Report run completed",
            extra={"entities": len(selected), "rows": len(rows), "dimensions": dimension_ids},
        )
        return ReportResult(
            rows=rows,
            summary=self.summarize(selected),
            metrics=metric_ids,
            dimensions=dimension_ids,
            reporting_currency=reporting_currency.upper(),
            fx_rates=dict(self.fx.rates),
            as_of=max(stamps) if stamps else None,
            generated_at=utc_now(),
            chart_config={"x_axis_field": "name", "y_axis_fields": metric_ids, "chart_type": chart_type},
        )
