#!/usr/bin/env python3
"""Synthetic supplier upload generator.

Writes a workbook the importer accepts, in one of two layouts:

- scored: one row per supplier with the score columns already filled in
  (Leverantörsnummer, Leverantör, Antal rader, Total omsättning, ...)
- raw: one row per article (Leverantörsnummer, Leverantör, Artikelnummer,
  Benämning, Antal, Omsättning, TG %, TB), matching the sample raw_mapping
  in config/levscore.yml

Useful for demos and for checking the row and size limits.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

SUPPLIER_PREFIXES = ["Nordic", "Svea", "Malmö", "Göta", "Baltic", "Skandia", "Vänern", "Norrland"]
SUPPLIER_SUFFIXES = ["Trading AB", "Grossist AB", "Import AB", "Industri AB", "Handel AB"]


def supplier_names(count: int, rng: np.random.Generator) -> list[str]:
    prefixes = rng.choice(SUPPLIER_PREFIXES, count)
    suffixes = rng.choice(SUPPLIER_SUFFIXES, count)
    return [f"{p} {s} {i + 1}" for i, (p, s) in enumerate(zip(prefixes, suffixes))]


def generate_article_rows(suppliers: int, articles: int, seed: int = 42) -> pd.DataFrame:
    """Article rows spread over ``suppliers`` with a long-tail revenue profile."""
    rng = np.random.default_rng(seed)
    numbers = [f"{10000 + i}" for i in range(suppliers)]
    names = supplier_names(suppliers, rng)

    # Zipf-like weights so a few suppliers carry most of the revenue
    weights = 1.0 / np.arange(1, suppliers + 1)
    weights /= weights.sum()
    owner = rng.choice(suppliers, articles, p=weights)

    revenue = np.round(rng.lognormal(mean=8.0, sigma=1.2, size=articles), 2)
    margin = np.round(rng.normal(loc=28.0, scale=9.0, size=articles).clip(-20, 80), 1)
    return pd.DataFrame(
        {
            "Leverantörsnummer": [numbers[i] for i in owner],
            "Leverantör": [names[i] for i in owner],
            "Artikelnummer": [f"ART-{i + 1:06d}" for i in range(articles)],
            "Benämning": [f"Artikel {i + 1}" for i in range(articles)],
            "Antal": rng.integers(1, 500, articles),
            "Omsättning": revenue,
            "TG %": margin,
            "TB": np.round(revenue * margin / 100, 2),
        }
    )


def generate_scored_rows(suppliers: int, seed: int = 42) -> pd.DataFrame:
    """Pre-scored supplier rows, sorted by revenue like an exported analysis."""
    rng = np.random.default_rng(seed)
    rows = rng.integers(1, 400, suppliers)
    revenue = np.sort(np.round(rng.lognormal(mean=12.0, sigma=1.0, size=suppliers), 2))[::-1]
    margin = np.round(rng.normal(loc=28.0, scale=8.0, size=suppliers).clip(0, 70), 1)
    share = revenue / revenue.sum()
    accumulated = np.cumsum(share)

    sales = np.round(3 * revenue / revenue.max(), 2)
    assortment = np.round(2 * rows / rows.max(), 2)
    per_row = revenue / rows
    efficiency = np.round(2 * per_row / per_row.max(), 2)
    margin_score = np.select([margin < 20, margin < 30, margin < 40], [0, 1, 2], default=3)
    total = np.round(sales + assortment + efficiency + margin_score, 1)

    return pd.DataFrame(
        {
            "Leverantörsnummer": [f"{10000 + i}" for i in range(suppliers)],
            "Leverantör": supplier_names(suppliers, rng),
            "Antal rader": rows,
            "Totalt antal": rows * rng.integers(1, 50, suppliers),
            "Total omsättning": revenue,
            "Snitt-TG (%)": margin,
            "Sales_score": sales,
            "Sortimentsbredd score": assortment,
            "Efficiency_score": efficiency,
            "Margin_score": margin_score,
            "Total_score": total,
            "Andel av total omsättning": np.round(share, 4),
            "Ackumulerad andel": np.round(accumulated, 4),
        }
    )


def write_workbook(output_path: Path, df: pd.DataFrame, sheet_name: str = "Leverantörer") -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        df.to_csv(output_path, sep=";", index=False, encoding="utf-8-sig")
    else:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
    print(f"Created upload file: {output_path}")
    print(f"  Rows: {len(df):,}")
    print(f"  Columns: {', '.join(str(c) for c in df.columns)}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic supplier upload (scored or raw article layout)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 200 pre-scored suppliers
  %(prog)s data/suppliers.xlsx

  # 20k article rows over 150 suppliers, for raw mode
  %(prog)s data/articles.xlsx --layout raw --suppliers 150 --articles 20000

  # Semicolon CSV instead of a workbook
  %(prog)s data/suppliers.csv --suppliers 50
        """,
    )
    parser.add_argument("output", type=Path, help="Output path (.xlsx or .csv)")
    parser.add_argument("--layout", choices=["scored", "raw"], default="scored", help="Sheet layout (default: scored)")
    parser.add_argument("--suppliers", type=int, default=200, help="Number of suppliers (default: 200)")
    parser.add_argument("--articles", type=int, default=5_000, help="Article rows in raw layout (default: 5,000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data (default: 42)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be generated without creating files")
    args = parser.parse_args()

    if args.suppliers <= 0:
        print("Error: --suppliers must be positive", file=sys.stderr)
        return 1
    if args.layout == "raw" and args.articles <= 0:
        print("Error: --articles must be positive", file=sys.stderr)
        return 1

    rows = args.articles if args.layout == "raw" else args.suppliers
    print("Upload generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Layout: {args.layout}")
    print(f"  Suppliers: {args.suppliers:,}")
    print(f"  Data rows: {rows:,}")
    print(f"  Random seed: {args.seed}")

    if args.dry_run:
        print("\n[DRY RUN] Would generate the file but not creating it.")
        return 0

    try:
        if args.layout == "raw":
            df = generate_article_rows(args.suppliers, args.articles, args.seed)
        else:
            df = generate_scored_rows(args.suppliers, args.seed)
        write_workbook(args.output, df)
        return 0
    except Exception as e:
        print(f"\nError generating upload: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
