from __future__ import annotations

import math
import numbers
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..models.config_models import ScoringThresholds
from ..models.supplier_record import SupplierRecord

"""Supplier score calculation for raw article uploads.

Article rows are aggregated per supplier and scored relative to the strongest
supplier in the same upload:

- sales:       3 * revenue / max revenue
- assortment:  2 * rows / max rows
- efficiency:  2 * (revenue / rows) / max(revenue / rows)
- margin:      banded average margin (<20: 0, <30: 1, <40: 2, else 3)
- total:       sum of the four, one decimal

Suppliers are then ranked by revenue; the running revenue share decides the
tier (A: top 80 %, B: next 15 %, C: tail). Diagnosis, short action and profile
texts are shown to Swedish-speaking buyers and are kept in Swedish.
"""

__all__ = [
    "RawArticle",
    "AggregatedSupplier",
    "AdjustedValues",
    "to_number",
    "round_half_up",
    "aggregate_by_supplier",
    "calculate_margin_score",
    "calculate_adjusted_values",
    "calculate_diagnosis",
    "calculate_action",
    "calculate_tier",
    "calculate_profile",
    "calculate_all_scores",
    "calculate_derived_fields",
    "fill_derived_fields",
]

DEFAULT_THRESHOLDS = ScoringThresholds()

STRONG_SUPPLIER = "Stark leverantör"
TIER_A = "A-tier – Kärnleverantör (topp 80%)"
TIER_B = "B-tier – Viktig (nästa 15%)"
TIER_C = "C-tier – Svans (sista 5%)"


@dataclass(frozen=True)
class RawArticle:
    article_number: str
    description: str
    quantity: float
    supplier_number: str
    supplier_name: str
    margin: float  # percent
    revenue: float
    gross_profit: float | None = None  # TB; margin-derived when missing


@dataclass(frozen=True)
class AggregatedSupplier:
    supplier_number: str
    name: str
    row_count: int
    total_quantity: float
    total_revenue: float
    total_tb: float
    avg_margin: float  # total_tb / total_revenue * 100


@dataclass(frozen=True)
class AdjustedValues:
    adjusted_total_tb: float
    adjusted_avg_margin: float
    adjusted_margin_score: int
    adjusted_total_score: float


_NOT_NUMERIC = re.compile(r"[^\d,.\-+]")


def to_number(value: Any) -> float:
    """Parse a cell into a number, NaN when it cannot be read.

    Unlike the import coercer this understands thousands separators:

    >>> to_number("79 586 567,50")
    79586567.5
    >>> to_number("79,586,567.50")
    79586567.5
    >>> to_number("6,560")
    6560.0
    """
    if value is None or value == "":
        return math.nan
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        as_float = float(value)
        return as_float if math.isfinite(as_float) else math.nan

    s = str(value).strip()
    if s in ("", "-", "+"):
        return math.nan
    s = re.sub(r"\s+", "", s)
    # currency suffixes such as "kr" or "SEK"
    s = _NOT_NUMERIC.sub("", s)
    if s in ("", "-", "+"):
        return math.nan

    last_comma = s.rfind(",")
    last_dot = s.rfind(".")
    if last_comma != -1 and last_dot != -1:
        if last_comma > last_dot:
            s = s.replace(".", "").replace(",", ".", 1)
        else:
            s = s.replace(",", "")
    elif last_comma != -1:
        digits_after = len(re.sub(r"\D", "", s[last_comma + 1 :]))
        if digits_after <= 2 and s.count(",") == 1:
            s = s.replace(",", ".")
        else:
            s = s.replace(",", "")
    elif last_dot != -1:
        digits_after = len(re.sub(r"\D", "", s[last_dot + 1 :]))
        if not (digits_after <= 2 and s.count(".") == 1):
            s = s.replace(".", "")

    try:
        parsed = float(s)
    except ValueError:
        return math.nan
    return parsed if math.isfinite(parsed) else math.nan


def round_half_up(value: float, digits: int) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _finite(value: float) -> bool:
    return value is not None and math.isfinite(value)


def aggregate_by_supplier(articles: Iterable[RawArticle]) -> list[AggregatedSupplier]:
    """Sum article rows per supplier number, first-seen order.

    Average margin is recomputed from the gross profit totals rather than
    averaged per row.
    """
    buckets: dict[str, dict[str, Any]] = {}
    for article in articles:
        gross_profit = article.gross_profit
        if gross_profit is None:
            gross_profit = article.revenue * (article.margin / 100)
        bucket = buckets.get(article.supplier_number)
        if bucket is None:
            buckets[article.supplier_number] = {
                "name": article.supplier_name,
                "rows": 1,
                "quantity": article.quantity,
                "revenue": article.revenue,
                "gross_profit": gross_profit,
            }
        else:
            bucket["rows"] += 1
            bucket["quantity"] += article.quantity
            bucket["revenue"] += article.revenue
            bucket["gross_profit"] += gross_profit

    aggregated: list[AggregatedSupplier] = []
    for number, b in buckets.items():
        avg_margin = (b["gross_profit"] / b["revenue"]) * 100 if b["revenue"] > 0 else 0
        aggregated.append(
            AggregatedSupplier(
                supplier_number=number,
                name=b["name"],
                row_count=b["rows"],
                total_quantity=b["quantity"],
                total_revenue=b["revenue"],
                total_tb=b["gross_profit"],
                avg_margin=avg_margin,
            )
        )
    return aggregated


def _sales_score(revenue: float, max_revenue: float) -> float:
    if max_revenue == 0:
        return 0
    return round_half_up(3 * revenue / max_revenue, 2)


def _assortment_score(row_count: int, max_row_count: int) -> float:
    if max_row_count == 0:
        return 0
    return round_half_up(2 * row_count / max_row_count, 2)


def _efficiency_score(revenue: float, row_count: int, max_efficiency: float) -> float:
    if row_count == 0 or max_efficiency == 0:
        return 0
    return round_half_up(2 * (revenue / row_count) / max_efficiency, 2)


def calculate_margin_score(avg_margin: float) -> int:
    if avg_margin < 20:
        return 0
    if avg_margin < 30:
        return 1
    if avg_margin < 40:
        return 2
    return 3


def _total_score(sales: float, assortment: float, efficiency: float, margin: float) -> float:
    return round_half_up(sales + assortment + efficiency + margin, 1)


def calculate_adjusted_values(
    total_tb: float,
    total_revenue: float,
    bonus_amount: float | None,
    tender_support: float | None,
    sales_score: float,
    assortment_score: float,
    efficiency_score: float,
) -> AdjustedValues:
    """Rescore a supplier after supplier bonus and tender support are added to TB."""
    adjusted_tb = total_tb + (bonus_amount or 0) + (tender_support or 0)
    adjusted_margin = (adjusted_tb / total_revenue) * 100 if total_revenue > 0 else 0
    adjusted_margin_score = calculate_margin_score(adjusted_margin)
    return AdjustedValues(
        adjusted_total_tb=adjusted_tb,
        adjusted_avg_margin=adjusted_margin,
        adjusted_margin_score=adjusted_margin_score,
        adjusted_total_score=_total_score(sales_score, assortment_score, efficiency_score, adjusted_margin_score),
    )


def calculate_diagnosis(
    total_score: float,
    sales_score: float,
    breadth_score: float,
    efficiency_score: float,
    margin_score: float,
    revenue: float,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Comma-separated reasons why a supplier is not strong."""
    if not _finite(total_score):
        return ""
    if total_score >= thresholds.strong_total:
        return STRONG_SUPPLIER

    reasons: list[str] = []
    if not _finite(sales_score) or sales_score < thresholds.sales_ok:
        reasons.append("Ej toppomsättning")
    if _finite(revenue) and 0 < revenue < thresholds.revenue_low:
        reasons.append("Låg faktisk omsättning")
    if not _finite(breadth_score) or breadth_score < thresholds.breadth_low:
        reasons.append("Låg bredd")
    if not _finite(efficiency_score) or efficiency_score < thresholds.efficiency_ok:
        reasons.append("Svag effektivitet")
    if not _finite(margin_score) or margin_score < 1:
        reasons.append("Låg TG")
    return ", ".join(reasons)


def calculate_action(
    total_score: float,
    sales_score: float,
    breadth_score: float,
    efficiency_score: float,
    margin_score: float,
    revenue: float,
    rows: float,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Recommended next step for a supplier, first matching rule wins."""
    if not _finite(total_score):
        return ""

    low_breadth = not _finite(breadth_score) or breadth_score < thresholds.breadth_low
    high_breadth = _finite(breadth_score) and breadth_score >= thresholds.breadth_low
    low_sales = not _finite(sales_score) or sales_score < thresholds.sales_ok
    low_eff = not _finite(efficiency_score) or efficiency_score < thresholds.efficiency_ok
    ok_revenue = _finite(revenue) and revenue >= thresholds.revenue_ok
    ok_demand = (
        (_finite(sales_score) and sales_score >= thresholds.sales_ok)
        or (_finite(efficiency_score) and efficiency_score >= thresholds.efficiency_ok)
        or ok_revenue
    )

    if total_score >= thresholds.strong_total:
        return "SKALA: Bredda sortiment (hög prio). Addera många artiklar."
    if total_score >= 6 and low_breadth and ok_demand:
        return "BREDD: Efterfrågan finns men sortimentet är smalt. Addera artiklar."
    if 4 <= total_score < 6 and low_breadth and ok_demand:
        return "SELEKTIV BREDD: Addera bara 'säkra' artiklar (reservdelar/tillbehör)."
    if high_breadth and (low_sales or low_eff):
        return "OPTIMERA: Du har bredd men den säljer svagt. Rensa, behåll toppsäljare."
    if total_score < 4 and low_sales and low_eff and (not _finite(revenue) or revenue < thresholds.revenue_low):
        return "PAUSA: Lägg inte tid här nu. Fokusera på andra leverantörer."

    # Remaining suppliers need evaluation; the label says why
    low_data = rows < thresholds.rows_min_activity or not _finite(revenue) or revenue < 20_000
    mixed_signals = (
        (_finite(sales_score) and sales_score >= thresholds.sales_ok and low_eff)
        or (_finite(efficiency_score) and efficiency_score >= thresholds.efficiency_ok and low_sales)
        or (_finite(margin_score) and margin_score >= 2 and (low_sales or low_eff))
    )
    potential = (
        (_finite(sales_score) and sales_score >= 0.5)
        or (_finite(efficiency_score) and efficiency_score >= 0.5)
        or (_finite(revenue) and 30_000 <= revenue < thresholds.revenue_ok)
    )

    if low_data:
        return (
            "UTVÄRDERA: LÅG DATA - För få artiklar/transaktioner för säker bedömning. "
            "Testa fler produkter eller vänta på mer data."
        )
    if mixed_signals:
        return (
            "UTVÄRDERA: MIXAD SIGNAL - Bra på vissa områden, svag på andra. "
            "Analysera toppartiklar och identifiera mönster."
        )
    if potential:
        return (
            "UTVÄRDERA: POTENTIAL - Kan vara intressant men osäker. "
            "Kolla Google Trends och marknadsmöjligheter."
        )
    return (
        "UTVÄRDERA: KONFLIKT - Signalerna säger olika saker. "
        "Kräver manuell bedömning av toppartiklar och kompletteringsmöjligheter."
    )


def calculate_tier(accumulated_share: float) -> str:
    if accumulated_share <= 0.8:
        return TIER_A
    if accumulated_share <= 0.95:
        return TIER_B
    return TIER_C


def calculate_profile(tier: str, breadth_score: float, thresholds: ScoringThresholds = DEFAULT_THRESHOLDS) -> str:
    letter = tier[:1]
    if letter == "A":
        if breadth_score < thresholds.breadth_low:
            return "A-tier. Stor leverantör. Låg bredd → BREDD sortiment."
        return "A-tier. Kärnleverantör → Optimera och försvara."
    if letter == "B":
        if breadth_score < thresholds.breadth_low:
            return "B-tier. Potential → Selektiv bredd."
        return "B-tier. Behåll, följ upp."
    return "C-tier. Svans → Pausa eller testa mycket selektivt."


def calculate_all_scores(
    aggregated: list[AggregatedSupplier],
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> list[SupplierRecord]:
    """Score every supplier of one upload.

    Returns records sorted by revenue, highest first.
    """
    if not aggregated:
        return []

    max_revenue = max(s.total_revenue for s in aggregated)
    max_rows = max(s.row_count for s in aggregated)
    max_efficiency = max(s.total_revenue / s.row_count if s.row_count > 0 else 0 for s in aggregated)
    grand_total = sum(s.total_revenue for s in aggregated)

    scored: list[tuple[AggregatedSupplier, dict[str, float]]] = []
    for s in aggregated:
        sales = _sales_score(s.total_revenue, max_revenue)
        assortment = _assortment_score(s.row_count, max_rows)
        efficiency = _efficiency_score(s.total_revenue, s.row_count, max_efficiency)
        margin = calculate_margin_score(s.avg_margin)
        scored.append(
            (
                s,
                {
                    "sales_score": sales,
                    "assortment_score": assortment,
                    "efficiency_score": efficiency,
                    "margin_score": margin,
                    "total_score": _total_score(sales, assortment, efficiency, margin),
                    "revenue_share": s.total_revenue / grand_total if grand_total > 0 else 0,
                },
            )
        )

    # stable: equal revenue keeps first-seen order
    scored.sort(key=lambda item: item[0].total_revenue, reverse=True)

    records: list[SupplierRecord] = []
    accumulated = 0.0
    for s, scores in scored:
        accumulated += scores["revenue_share"]
        tier = calculate_tier(accumulated)
        records.append(
            SupplierRecord(
                supplier_number=s.supplier_number,
                name=s.name,
                row_count=s.row_count,
                total_quantity=s.total_quantity,
                total_revenue=s.total_revenue,
                avg_margin=s.avg_margin,
                accumulated_share=accumulated,
                tier=tier,
                profile=calculate_profile(tier, scores["assortment_score"], thresholds),
                diagnosis=calculate_diagnosis(
                    scores["total_score"],
                    scores["sales_score"],
                    scores["assortment_score"],
                    scores["efficiency_score"],
                    scores["margin_score"],
                    s.total_revenue,
                    thresholds,
                ) or None,
                short_action=calculate_action(
                    scores["total_score"],
                    scores["sales_score"],
                    scores["assortment_score"],
                    scores["efficiency_score"],
                    scores["margin_score"],
                    s.total_revenue,
                    s.row_count,
                    thresholds,
                ) or None,
                total_tb=s.total_tb,
                **scores,
            )
        )
    return records


def calculate_derived_fields(
    record: SupplierRecord,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> dict[str, str]:
    """Diagnosis, short action and tier for a pre-scored record.

    Values present on the record are kept. Without an accumulated share the
    tier falls back to total-score bands.
    """
    diagnosis = record.diagnosis or calculate_diagnosis(
        record.total_score,
        record.sales_score,
        record.assortment_score,
        record.efficiency_score,
        record.margin_score,
        record.total_revenue,
        thresholds,
    )
    short_action = record.short_action or calculate_action(
        record.total_score,
        record.sales_score,
        record.assortment_score,
        record.efficiency_score,
        record.margin_score,
        record.total_revenue,
        record.row_count,
        thresholds,
    )
    tier = record.tier
    if not tier:
        if record.total_score >= 8:
            tier = "A-tier"
        elif record.total_score >= 5:
            tier = "B-tier"
        else:
            tier = "C-tier"
    return {"diagnosis": diagnosis, "short_action": short_action, "tier": tier}


def fill_derived_fields(
    record: SupplierRecord,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> SupplierRecord:
    derived = calculate_derived_fields(record, thresholds)
    # an empty computed diagnosis stays absent
    return replace(
        record,
        diagnosis=derived["diagnosis"] or None,
        short_action=derived["short_action"] or None,
        tier=derived["tier"],
    )
