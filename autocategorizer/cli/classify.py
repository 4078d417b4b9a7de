#!/usr/bin/env python3
"""
Transaction classification CLI

Classifies a description the way the transaction form does while typing:
- high confidence: suggestion is applied
- medium confidence: asks for confirmation and learns a rule if accepted
- low confidence: nothing is suggested

With --csv, classifies every row of a `description,amount` CSV file.
"""
import argparse
import csv
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from autocategorizer.config import Settings, load_settings, setup_logging
from autocategorizer.core import (
    Band,
    CategorizerError,
    ClassificationEngine,
    LearningCoordinator,
    Rule,
    Suggestion,
)
from autocategorizer.storage import PostgresRuleStore
from autocategorizer.utils.db_connection import get_db_connection


def parse_amount(amount_str: str) -> float:
    """Parse '1,234.56' / '$42.50' / '-7' style amounts"""
    cleaned = (amount_str or '').replace('$', '').replace('€', '').replace(',', '').strip()
    try:
        return float(Decimal(cleaned or '0'))
    except InvalidOperation:
        raise ValueError(f"Could not parse amount: {amount_str}") from None


def read_csv_rows(csv_path: Path) -> List[Tuple[str, float]]:
    """Read (description, amount) pairs from a CSV with those two columns"""
    rows = []
    with open(csv_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        missing = {'description', 'amount'} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"CSV is missing column(s): {', '.join(sorted(missing))}")

        for row in reader:
            description = (row['description'] or '').strip()
            if not description:
                continue
            rows.append((description, parse_amount(row['amount'])))
    return rows


def display_suggestion(suggestion: Suggestion):
    """Print a suggestion's fields"""
    print(f"Confidence:   {suggestion.confidence:.0%} ({suggestion.band.value})")
    if suggestion.entity:
        print(f"Entity:       {suggestion.entity}")
    if suggestion.category:
        print(f"Category:     {suggestion.category}")
    if suggestion.subcategory:
        print(f"Subcategory:  {suggestion.subcategory}")
    if suggestion.tags:
        print(f"Tags:         {', '.join(suggestion.tags)}")
    print(f"Reasoning:    {suggestion.reasoning()}")
    if suggestion.invalid_rule_ids:
        skipped = ', '.join(str(rule_id) for rule_id in suggestion.invalid_rule_ids)
        print(f"⚠️  Skipped rules with invalid regex: {skipped}")


def classify_description(engine: ClassificationEngine,
                         coordinator: LearningCoordinator,
                         description: str,
                         amount: float,
                         settings: Settings,
                         ask: Callable[[str], str] = input) -> Tuple[Optional[Suggestion], Optional[Rule]]:
    """
    Classify one description and act on its band

    Args:
        ask: Prompt function (input() by default)

    Returns:
        (suggestion or None if the description is too short, learned rule or None)
    """
    if not settings.should_classify(description):
        print(f"ℹ️  Description too short to classify (minimum {settings.min_description_length} characters)")
        return None, None

    suggestion = engine.classify(description, amount)
    band = suggestion.band

    if band == Band.IGNORE:
        print("🤷 No suggestion for this description")
        return suggestion, None

    print("\n🤖 Suggestion")
    print("-" * 80)
    display_suggestion(suggestion)

    if band == Band.AUTO_APPLY:
        print("\n✅ Suggestion applied")
        return suggestion, None

    answer = ask("\nApply this suggestion and learn a rule from it? (y/n): ").strip().lower()
    rule = coordinator.learn_from(description, amount, suggestion, confirmed=answer in ('y', 'yes'))

    if rule:
        print(f"   ✅ Learned rule {rule.id}: '{rule.pattern}' (priority {rule.priority})")
    else:
        print("   ⏭️  Not applied, nothing learned")
    return suggestion, rule


def classify_csv(engine: ClassificationEngine, csv_path: Path) -> List[Suggestion]:
    """Classify every row of a CSV file and print one line per row"""
    rows = read_csv_rows(csv_path)
    suggestions = engine.classify_batch(rows)

    icons = {Band.AUTO_APPLY: '✅', Band.CONFIRM: '⚠️ ', Band.IGNORE: '❌'}
    for (description, amount), suggestion in zip(rows, suggestions):
        print(f"{icons[suggestion.band]} {description[:40]:<40} {amount:>10.2f}  {suggestion.reasoning()}")

    counts = {band: 0 for band in Band}
    for suggestion in suggestions:
        counts[suggestion.band] += 1

    print("\n" + "=" * 80)
    print(f"Total rows:  {len(rows)}")
    print(f"  ✅ Auto-apply: {counts[Band.AUTO_APPLY]}")
    print(f"  ⚠️  Confirm:    {counts[Band.CONFIRM]}")
    print(f"  ❌ No match:   {counts[Band.IGNORE]}")
    print("=" * 80)
    return suggestions


def main(argv=None):
    """Main classification function"""
    parser = argparse.ArgumentParser(description='Suggest a category for a transaction description')
    parser.add_argument('description', nargs='?', help='Transaction description')
    parser.add_argument('--amount', type=parse_amount, default=0.0, help='Transaction amount')
    parser.add_argument('--csv', type=Path, help='Classify a description,amount CSV instead')
    args = parser.parse_args(argv)

    if not args.description and not args.csv:
        parser.error('a description or --csv is required')

    settings = load_settings()
    setup_logging(settings)

    try:
        conn = get_db_connection(settings.database)
    except Exception as e:
        print(f"❌ Database connection failed: {e}")
        sys.exit(1)

    try:
        store = PostgresRuleStore(conn)
        engine = ClassificationEngine(store)

        if args.csv:
            classify_csv(engine, args.csv)
        else:
            classify_description(
                engine, LearningCoordinator(store), args.description, args.amount, settings
            )
    except (CategorizerError, ValueError, OSError) as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
