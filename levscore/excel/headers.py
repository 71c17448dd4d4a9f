from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

"""Header normalization and multi-alias column resolution.

Spreadsheets exported from different tools disagree on casing, invisible
characters and leading byte-order marks. Lookups therefore go through a
declarative alias table (canonical field -> accepted header spellings, most
preferred first) and a two-tier resolver: exact header text first, normalized
header text second.
"""

__all__ = [
    "normalize_header",
    "find_column_value",
    "RequiredColumn",
    "REQUIRED_COLUMNS",
    "SUPPLIER_COLUMN_ALIASES",
]

_LEADING_BOM = re.compile("^\ufeff")
_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")


def normalize_header(header: Any) -> str:
    """Return the comparison key for a raw header cell.

    >>> normalize_header("\\ufeff  LevNr\\u200b ")
    'levnr'
    """
    text = _LEADING_BOM.sub("", str(header))
    text = _ZERO_WIDTH.sub("", text)
    return text.strip().lower()


SUPPLIER_COLUMN_ALIASES: dict[str, list[str]] = {
    "supplier_number": ["Leverantörsnummer", "Leverantörnummer", "SupplierNumber", "Supplier Number", "LevNr"],
    "name": ["Leverantör", "Supplier", "Name", "Namn", "Leverantörsnamn"],
    "row_count": ["Antal rader", "Antal_rader", "RowCount"],
    "total_quantity": ["Totalt antal", "Totalt_antal", "TotalQuantity"],
    "total_revenue": ["Total omsättning", "Total_omsättning", "TotalRevenue", "Omsättning"],
    "avg_margin": ["Snitt-TG (%)", "Snitt-TG", "AvgMargin", "TG", "Täckningsgrad"],
    "sales_score": ["Sales_score", "Sales score", "SalesScore"],
    "assortment_score": ["Sortimentsbredd score", "Sortimentsbredd_score", "AssortmentScore"],
    "efficiency_score": ["Efficiency_score", "Efficiency score", "EfficiencyScore"],
    "margin_score": ["Margin_score", "Margin score", "MarginScore"],
    "total_score": ["Total_score", "Total score", "TotalScore"],
    "diagnosis": ["Diagnos (varför)", "Diagnos", "Diagnosis"],
    "short_action": ["Kort handling", "Kort_handling", "ShortAction", "Handling"],
    "revenue_share": ["Andel av total omsättning", "Andel_av_total_omsättning", "RevenueShare"],
    "accumulated_share": ["Ackumulerad andel", "Ackumulerad_andel", "AccumulatedShare"],
    "tier": ["Leverantörstier", "Tier", "Leverantörs-tier"],
    "profile": ["Leverantörsprofil (valfri, men kraftfull)", "Leverantörsprofil", "Profile"],
}


@dataclass(frozen=True)
class RequiredColumn:
    display_name: str  # shown to the user when missing
    aliases: tuple[str, ...]  # already normalized


REQUIRED_COLUMNS: tuple[RequiredColumn, ...] = (
    RequiredColumn("Leverantörsnummer", ("leverantörsnummer", "leverantörnummer", "suppliernumber", "levnr")),
    RequiredColumn("Leverantör", ("leverantör", "supplier", "name", "namn")),
)


def find_column_value(row: Mapping[str, Any], aliases: Sequence[str]) -> Any | None:
    """Look up a cell by any of ``aliases``.

    Exact header matches win over normalized ones for every alias: the
    normalized pass only runs when no alias is present verbatim. Within the
    normalized pass aliases are tried in order, and for each alias the row keys
    in their encounter order.

    Returns None when no alias matches.
    """
    for alias in aliases:
        if alias in row:
            return row[alias]

    normalized_keys = [(normalize_header(key), key) for key in row]
    for alias in aliases:
        wanted = normalize_header(alias)
        for normalized, key in normalized_keys:
            if normalized == wanted:
                return row[key]
    return None
