from __future__ import annotations

import logging
from collections.abc import Mapping

from investor_analytics.config import DEFAULT_FX_RATES, settings
from investor_analytics.models.portfolio import DirectInvestmentRecord, FundRecord, PortfolioEntity
from investor_analytics.utils.ratios import as_number, derive_ratios

logger = logging.getLogger(__name__)

FUND_ASSET_CLASS_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Venture Capital", ("venture", "tech", "innovation", "startup")),
    ("Growth Equity", ("growth", "expansion", "scale")),
    ("Private Credit", ("credit", "debt", "mezzanine", "direct lending")),
    ("Infrastructure", ("infrastructure", "transport", "energy", "renewable")),
    ("Real Estate", ("real estate", "property", "urban", "residential", "logistics")),
    ("Buyout", ("buyout", "capital partners", "equity partners")),
]

INVESTMENT_TYPE_ASSET_CLASS: dict[str, str] = {
    "PRIVATE_EQUITY": "Private Equity",
    "PRIVATE_DEBT": "Private Credit",
    "PRIVATE_CREDIT": "Private Credit",
    "PUBLIC_EQUITY": "Public Equity",
    "REAL_ESTATE": "Real Estate",
    "REAL_ASSETS": "Real Assets",
    "CASH": "Cash & Equivalents",
}

REGION_BY_GEOGRAPHY: dict[str, str] = {
    "US": "North America",
    "USA": "North America",
    "UNITED STATES": "North America",
    "CA": "North America",
    "CANADA": "North America",
    "UK": "Europe",
    "GB": "Europe",
    "UNITED KINGDOM": "Europe",
    "DE": "Europe",
    "GERMANY": "Europe",
    "FR": "Europe",
    "FRANCE": "Europe",
    "LU": "Europe",
    "LUXEMBOURG": "Europe",
    "IE": "Europe",
    "IRELAND": "Europe",
    "NL": "Europe",
    "NETHERLANDS": "Europe",
    "CH": "Europe",
    "SWITZERLAND": "Europe",
    "SE": "Europe",
    "SWEDEN": "Europe",
    "EUROPE": "Europe",
    "CN": "Asia Pacific",
    "CHINA": "Asia Pacific",
    "JP": "Asia Pacific",
    "JAPAN": "Asia Pacific",
    "IN": "Asia Pacific",
    "INDIA": "Asia Pacific",
    "SG": "Asia Pacific",
    "SINGAPORE": "Asia Pacific",
    "HK": "Asia Pacific",
    "HONG KONG": "Asia Pacific",
    "AU": "Asia Pacific",
    "AUSTRALIA": "Asia Pacific",
    "ASIA": "Asia Pacific",
    "BR": "Latin America",
    "BRAZIL": "Latin America",
    "MX": "Latin America",
    "MEXICO": "Latin America",
    "KY": "Offshore",
    "CAYMAN ISLANDS": "Offshore",
    "AE": "Middle East & Africa",
    "UAE": "Middle East & Africa",
    "ZA": "Middle East & Africa",
    "SOUTH AFRICA": "Middle East & Africa",
}


def infer_fund_asset_class(name: str | None, manager: str | None) -> str:
    source = f"{name or ''} {manager or ''}".lower()
    for label, keywords in FUND_ASSET_CLASS_KEYWORDS:
        if any(keyword in source for keyword in keywords):
            return label
    return "Multi-Strategy"


def map_investment_type_to_asset_class(investment_type: str | None) -> str:
    return INVESTMENT_TYPE_ASSET_CLASS.get((investment_type or "").strip().upper(), "Direct Investments")


def region_for(geography: str | None) -> str | None:
    clean = (geography or "").strip().upper()
    if not clean:
        return None
    return REGION_BY_GEOGRAPHY.get(clean, "Other")


class FxConverter:
    def __init__(self, rates: Mapping[str, float] | None = None) -> None:
        self.rates = {code.upper(): float(rate) for code, rate in (rates or DEFAULT_FX_RATES).items()}

    def rate(self, currency: str | None) -> float:
        rate = self.rates.get((currency or "").strip().upper())
        if not rate or rate <= 0:
            return 1.0
        return rate

    def convert(self, amount: float, from_currency: str | None, to_currency: str | None) -> float:
        return as_number(amount) / self.rate(from_currency) * self.rate(to_currency)


class NormalizationService:
    def __init__(self, fx: FxConverter | None = None) -> None:
        self.fx = fx or FxConverter()

    @staticmethod
    def _currency(code: str | None) -> str:
        return (code or "USD").strip().upper() or "USD"

    def normalize_fund(self, record: FundRecord, reporting_currency: str) -> PortfolioEntity:
        source = self._currency(record.base_currency)
        target = self._currency(reporting_currency)

        commitment = self.fx.convert(as_number(record.commitment), source, target)
        paid_in = self.fx.convert(as_number(record.paid_in), source, target)
        nav = self.fx.convert(as_number(record.nav), source, target)
        distributions = paid_in * as_number(record.dpi)
        ratios = derive_ratios(commitment, paid_in, nav, distributions)

        return PortfolioEntity(
            id=record.id,
            name=record.name,
            entity_type="Fund",
            asset_class=record.asset_class or infer_fund_asset_class(record.name, record.manager),
            geography=record.domicile,
            region=region_for(record.domicile),
            manager=record.manager,
            vintage=record.vintage,
            strategy=record.strategy,
            sector=record.sector,
            investment_type="Fund",
            base_currency=source,
            reporting_currency=target,
            commitment=commitment,
            paid_in=paid_in,
            nav=nav,
            distributions=distributions,
            irr=as_number(record.irr),
            updated_at=record.updated_at,
            **ratios,
        )

    def normalize_direct_investment(self, record: DirectInvestmentRecord, reporting_currency: str) -> PortfolioEntity:
        source = self._currency(record.currency)
        target = self._currency(reporting_currency)

        # Direct investments are treated as fully called at the invested amount.
        invested = self.fx.convert(as_number(record.investment_amount), source, target)
        nav = self.fx.convert(as_number(record.current_value), source, target)
        ratios = derive_ratios(invested, invested, nav, 0.0)

        return PortfolioEntity(
            id=record.id,
            name=record.name,
            entity_type="DirectInvestment",
            asset_class=record.asset_class or map_investment_type_to_asset_class(record.investment_type),
            geography=record.geography,
            region=region_for(record.geography),
            manager=None,
            vintage=record.investment_date.year if record.investment_date else None,
            strategy=record.stage,
            sector=record.industry,
            investment_type=record.investment_type or "Direct Investment",
            base_currency=source,
            reporting_currency=target,
            commitment=invested,
            paid_in=invested,
            nav=nav,
            distributions=0.0,
            irr=0.0,
            updated_at=record.updated_at,
            **ratios,
        )

    def normalize(
        self,
        funds: list[FundRecord],
        direct_investments: list[DirectInvestmentRecord] | None = None,
        reporting_currency: str | None = None,
    ) -> list[PortfolioEntity]:
        currency = self._currency(reporting_currency or settings.default_reporting_currency)
        entities = [self.normalize_fund(fund, currency) for fund in funds]
        entities.extend(self.normalize_direct_investment(di, currency) for di in direct_investments or [])
        logger.info(
            "Portfolio normalized",
            extra={"funds": len(funds), "direct_investments": len(direct_investments or []), "currency": currency},
        )
        return entities
