#!/usr/bin/env python3
"""
Rule management CLI

List, add, search, update and deactivate categorization rules.
Rules are never deleted; deactivated rules stay visible with --all.
"""
import argparse
import sys
from typing import Iterable, List

from autocategorizer.config import load_settings, setup_logging
from autocategorizer.core import CategorizerError, PatternType, Rule, RuleInput, RuleStore
from autocategorizer.storage import PostgresRuleStore
from autocategorizer.utils.db_connection import get_db_connection


def parse_tags(raw: str) -> List[str]:
    """'a, b,c' -> ['a', 'b', 'c']"""
    return [tag.strip() for tag in (raw or '').split(',') if tag.strip()]


def display_rules(rules: Iterable[Rule]):
    """Print rules as a table"""
    rules = list(rules)
    if not rules:
        print("No rules found")
        return

    print(f"{'ID':>5}  {'PRI':>4}  {'CONF':>5}  {'TYPE':<10}  {'PATTERN':<25}  CLASSIFICATION")
    print("-" * 80)
    for rule in rules:
        classification = ' / '.join(p for p in (rule.entity, rule.category, rule.subcategory) if p)
        if rule.tags:
            classification += f" [{', '.join(rule.tags)}]"
        status = '' if rule.active else '  (inactive)'
        print(f"{rule.id:>5}  {rule.priority:>4}  {rule.confidence:>5.2f}  "
              f"{rule.pattern_type.value:<10}  {rule.pattern[:25]:<25}  {classification}{status}")


def list_rules(store: RuleStore, include_inactive: bool = False):
    rules = store.all_rules() if include_inactive else store.active_rules()
    display_rules(rules)
    print(f"\n📊 {store.count_active()} active rule(s)")


def add_rule(store: RuleStore, args) -> Rule:
    rule = store.add(RuleInput(
        name=args.name or '',
        pattern=args.pattern,
        pattern_type=args.type,
        entity=args.entity,
        category=args.category,
        subcategory=args.subcategory,
        tags=parse_tags(args.tags),
        confidence=args.confidence,
        priority=args.priority,
    ))
    print(f"✅ Created rule {rule.id}: {rule.pattern_type.value} '{rule.pattern}'")
    return rule


def update_rule(store: RuleStore, args) -> Rule:
    changes = {}
    for name in ('name', 'pattern', 'entity', 'category', 'subcategory', 'confidence', 'priority'):
        value = getattr(args, name)
        if value is not None:
            changes[name] = value
    if args.type is not None:
        changes['pattern_type'] = args.type
    if args.tags is not None:
        changes['tags'] = parse_tags(args.tags)

    rule = store.update(args.rule_id, **changes)
    print(f"✅ Updated rule {rule.id}")
    return rule


def deactivate_rule(store: RuleStore, rule_id: int) -> bool:
    changed = store.deactivate(rule_id)
    if changed:
        print(f"✅ Deactivated rule {rule_id}")
    else:
        print(f"ℹ️  Rule {rule_id} is already inactive or does not exist")
    return changed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Manage categorization rules')
    commands = parser.add_subparsers(dest='command', required=True)

    list_cmd = commands.add_parser('list', help='List rules in match order')
    list_cmd.add_argument('--all', action='store_true', help='Include inactive rules')

    search_cmd = commands.add_parser('search', help='Find rules by name or pattern')
    search_cmd.add_argument('term')

    deactivate_cmd = commands.add_parser('deactivate', help='Deactivate a rule')
    deactivate_cmd.add_argument('rule_id', type=int)

    pattern_types = [p.value for p in PatternType]

    add_cmd = commands.add_parser('add', help='Add a rule')
    add_cmd.add_argument('pattern')
    add_cmd.add_argument('--type', choices=pattern_types, default=PatternType.CONTAINS.value)
    add_cmd.add_argument('--confidence', type=float, default=0.8)
    add_cmd.add_argument('--priority', type=int, default=1)
    add_cmd.add_argument('--tags', default='', help='Comma-separated tags')

    update_cmd = commands.add_parser('update', help='Change fields of a rule')
    update_cmd.add_argument('rule_id', type=int)
    update_cmd.add_argument('--pattern')
    update_cmd.add_argument('--type', choices=pattern_types)
    update_cmd.add_argument('--confidence', type=float)
    update_cmd.add_argument('--priority', type=int)
    update_cmd.add_argument('--tags', help='Comma-separated tags')

    for cmd in (add_cmd, update_cmd):
        cmd.add_argument('--name')
        cmd.add_argument('--entity')
        cmd.add_argument('--category')
        cmd.add_argument('--subcategory')

    return parser


def run_command(store: RuleStore, args):
    """Dispatch a parsed command against a store"""
    if args.command == 'list':
        list_rules(store, include_inactive=args.all)
    elif args.command == 'search':
        display_rules(store.search(args.term))
    elif args.command == 'deactivate':
        deactivate_rule(store, args.rule_id)
    elif args.command == 'add':
        add_rule(store, args)
    elif args.command == 'update':
        update_rule(store, args)


def main(argv=None):
    """Main rule management function"""
    args = build_parser().parse_args(argv)

    settings = load_settings()
    setup_logging(settings)

    try:
        conn = get_db_connection(settings.database)
    except Exception as e:
        print(f"❌ Database connection failed: {e}")
        sys.exit(1)

    try:
        run_command(PostgresRuleStore(conn), args)
    except CategorizerError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
