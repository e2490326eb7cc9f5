#!/usr/bin/env python3
"""Preview a quote breakdown from a rate card and a film template.

Applies the template to a fresh builder session at the given duration and
prints the shot breakdown, totals and budget suggestions.

Usage:
    python scripts/preview_quote.py --rate-card rate_card.json --template product_film.json
    python scripts/preview_quote.py --rate-card rate_card.json --template t.json --duration 90 --budget
    python scripts/preview_quote.py --rate-card rate_card.json --template t.json --json

Rate card JSON: {"hours_per_second": 1, "editing_hours_per_30s": 8,
"hourly_rate": 125, "items": [{"shot_type": "Wide", "category": "scene",
"hours": 3}, ...]}
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from quote_engine.models import FilmTemplate, QuoteMode, RateCard
from quote_engine.services import QuoteBuilder

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def print_breakdown(builder: QuoteBuilder) -> None:
    print("=" * 72)
    print(f"{'Shot type':<32}{'Pct':>8}{'Qty':>6}{'Base h':>9}{'Eff':>6}{'Hours':>11}")
    print("-" * 72)
    for shot in builder.shots:
        name = "Animation (companion)" if shot.is_companion else shot.shot_type
        pct = "" if shot.is_companion else f"{shot.percentage:.1f}%"
        print(
            f"{name:<32}{pct:>8}{shot.quantity:>6}{shot.base_hours_each:>9.2f}"
            f"{shot.efficiency_multiplier:>6.2f}{shot.adjusted_hours:>11.2f}"
        )
    print("-" * 72)
    print(f"Duration:        {builder.duration}s ({builder.total_shot_count} target shots)")
    print(f"Shot hours:      {builder.total_shot_hours:.2f}")
    print(f"Editing hours:   {builder.editing_hours:.2f}")
    print(f"Total hours:     {builder.total_hours:.2f}")
    if builder.pool_budget_hours is not None:
        print(f"Pool budget:     {builder.pool_budget_hours:.2f}")
        print(f"Remaining:       {builder.remaining:.2f}")
    print("=" * 72)


def print_suggestions(builder: QuoteBuilder) -> None:
    suggestions = builder.suggestions()
    if not suggestions:
        return
    print("You could add:")
    for s in suggestions:
        print(f"  {s.quantity} x {s.name} ({s.total_hours:.0f}h, score {s.score:.0f})")


def main():
    parser = argparse.ArgumentParser(
        description="Preview a quote breakdown for a rate card and template"
    )
    parser.add_argument(
        "--rate-card",
        type=Path,
        required=True,
        help="Rate card JSON file"
    )
    parser.add_argument(
        "--template",
        type=Path,
        required=True,
        help="Film template JSON file"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=None,
        help="Film duration in seconds (default: the template's duration)"
    )
    parser.add_argument(
        "--budget",
        action="store_true",
        help="Price as a budget quote and show the remaining pool"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the persistence payload as JSON instead of a table"
    )

    args = parser.parse_args()

    for path in (args.rate_card, args.template):
        if not path.exists():
            print(f"Error: {path} does not exist")
            return 1

    rate_card = RateCard.model_validate_json(args.rate_card.read_text())
    template = FilmTemplate.model_validate_json(args.template.read_text())

    builder = QuoteBuilder(
        rate_card=rate_card,
        mode=QuoteMode.budget if args.budget else QuoteMode.retainer,
    )
    builder.set_duration(args.duration or template.duration_seconds)
    builder.apply_template(template)

    if args.json:
        print(json.dumps(builder.get_payload().model_dump(mode="json"), indent=2))
        return 0

    print_breakdown(builder)
    print_suggestions(builder)
    return 0


if __name__ == "__main__":
    sys.exit(main())
