from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from ..models.config_models import ArticleColumnMapping
from ..services.scoring import RawArticle, to_number
from .reader import read_first_sheet, sheet_rows
from .supplier_parser import EmptyFileError, SupplierParseError, TooManyRowsError

"""Raw article sheet ingestion.

Unlike the pre-scored format, raw sheets are read through an explicit mapping
of logical field -> literal header chosen by the uploader. Each row is one
article; rows without a supplier number or name are skipped.
"""

__all__ = [
    "NoValidArticlesError",
    "article_from_row",
    "parse_article_file",
]


class NoValidArticlesError(SupplierParseError):
    """Every row lacked a supplier number or a supplier name."""


def _text(row: Mapping[str, Any], header: str | None, max_length: int) -> str:
    if not header:
        return ""
    value = row.get(header)
    if value is None or value == "":
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()[:max_length]


def _number(row: Mapping[str, Any], header: str | None) -> float:
    if not header:
        return math.nan
    return to_number(row.get(header))


def article_from_row(row: Mapping[str, Any], mapping: ArticleColumnMapping) -> RawArticle | None:
    supplier_number = _text(row, mapping.supplier_number, 50)
    supplier_name = _text(row, mapping.supplier_name, 200)
    if not supplier_number or not supplier_name:
        return None

    quantity = _number(row, mapping.quantity) if mapping.quantity else 1
    margin = _number(row, mapping.margin) if mapping.margin else 0
    revenue = _number(row, mapping.revenue)
    gross_profit = _number(row, mapping.gross_profit) if mapping.gross_profit else None

    return RawArticle(
        article_number=_text(row, mapping.article_number, 100),
        description=_text(row, mapping.description, 500),
        quantity=1 if math.isnan(quantity) else max(0, quantity),
        supplier_number=supplier_number,
        supplier_name=supplier_name,
        margin=0 if math.isnan(margin) else max(-100, min(100, margin)),
        revenue=0 if math.isnan(revenue) else max(0, revenue),
        gross_profit=None if gross_profit is None or math.isnan(gross_profit) else max(0, gross_profit),
    )


def parse_article_file(
    buffer: bytes,
    mapping: ArticleColumnMapping,
    filename: str | None = None,
    max_rows: int | None = None,
) -> list[RawArticle]:
    """Read article rows from the first sheet using ``mapping``.

    Raises:
        EmptyFileError: no data rows
        TooManyRowsError: more than ``max_rows`` data rows
        NoValidArticlesError: no row carried a supplier number and name
    """
    sheet_name, df = read_first_sheet(buffer, filename)
    sheet = sheet_rows(df, sheet_name)
    if not sheet.rows:
        raise EmptyFileError("no data found in file")
    if max_rows is not None and len(sheet.rows) > max_rows:
        raise TooManyRowsError(f"file has too many rows: max {max_rows} rows allowed")

    articles = [a for a in (article_from_row(row, mapping) for row in sheet.rows) if a is not None]
    if not articles:
        raise NoValidArticlesError("no valid article data found")
    return articles
