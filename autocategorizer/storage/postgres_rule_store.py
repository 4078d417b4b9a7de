"""
PostgreSQL Rule Store

Keeps rules in the `categorization_rules` table (see db/schema.sql).
Every write runs in its own database transaction and is committed or rolled
back as a whole, so readers never see a half-written rule.
"""
import logging
import threading
from typing import Optional, Tuple

import psycopg2

from ..core.errors import RuleNotFoundError, RuleStoreError
from ..core.models import PatternType, Rule, RuleInput
from ..core.rule_store import RuleStore, report_invalid_pattern

logger = logging.getLogger(__name__)

RULE_COLUMNS = """
    rule_id, name, pattern, pattern_type, entity, category, subcategory,
    tags, confidence, priority, is_active, created_by, created_at
"""


def row_to_rule(row) -> Rule:
    """Map a categorization_rules row (RULE_COLUMNS order) to a Rule"""
    return Rule(
        id=row[0],
        name=row[1],
        pattern=row[2],
        pattern_type=PatternType(row[3]),
        entity=row[4],
        category=row[5],
        subcategory=row[6],
        tags=tuple(row[7] or ()),
        confidence=float(row[8]),
        priority=int(row[9]),
        active=bool(row[10]),
        created_by=row[11],
        created_at=row[12],
    )


class PostgresRuleStore(RuleStore):
    """
    Rule store backed by a psycopg2 connection

    The connection is shared, so every statement and its commit or rollback
    run under one lock. A failed read can then never roll back a write that
    has not committed yet.
    """

    def __init__(self, conn):
        """
        Args:
            conn: Open psycopg2 connection (see utils.db_connection)
        """
        self.conn = conn
        self._lock = threading.RLock()

    def _fetch(self, query: str, params=()) -> Tuple[Rule, ...]:
        with self._lock:
            cursor = self.conn.cursor()
            try:
                cursor.execute(query, params)
                rows = cursor.fetchall()
                self.conn.commit()
            except psycopg2.Error as e:
                self.conn.rollback()
                raise RuleStoreError(f"Failed to load rules: {e}") from e
            finally:
                cursor.close()

        return tuple(row_to_rule(row) for row in rows)

    def _write(self, query: str, params) -> Optional[Rule]:
        """Run one statement with RETURNING in its own transaction"""
        with self._lock:
            cursor = self.conn.cursor()
            try:
                cursor.execute(query, params)
                row = cursor.fetchone()
                self.conn.commit()
            except psycopg2.Error as e:
                self.conn.rollback()
                raise RuleStoreError(f"Failed to write rule: {e}") from e
            finally:
                cursor.close()

        return row_to_rule(row) if row else None

    def add(self, rule_input: RuleInput) -> Rule:
        cleaned = rule_input.validate()

        rule = self._write(f"""
            INSERT INTO categorization_rules (
                name, pattern, pattern_type, entity, category, subcategory,
                tags, confidence, priority, is_active, created_by
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {RULE_COLUMNS}
        """, self._params(cleaned))

        report_invalid_pattern(rule)
        logger.debug("Stored rule %s (%s %r)", rule.id, rule.pattern_type.value, rule.pattern)
        return rule

    def active_rules(self) -> Tuple[Rule, ...]:
        return self._fetch(f"""
            SELECT {RULE_COLUMNS}
            FROM categorization_rules
            WHERE is_active = TRUE
            ORDER BY priority DESC, rule_id ASC
        """)

    def all_rules(self) -> Tuple[Rule, ...]:
        return self._fetch(f"""
            SELECT {RULE_COLUMNS}
            FROM categorization_rules
            ORDER BY rule_id ASC
        """)

    def get(self, rule_id) -> Optional[Rule]:
        rules = self._fetch(f"""
            SELECT {RULE_COLUMNS}
            FROM categorization_rules
            WHERE rule_id = %s
        """, (rule_id,))
        return rules[0] if rules else None

    def deactivate(self, rule_id) -> bool:
        rule = self._write(f"""
            UPDATE categorization_rules
            SET is_active = FALSE
            WHERE rule_id = %s AND is_active = TRUE
            RETURNING {RULE_COLUMNS}
        """, (rule_id,))

        if rule is None:
            logger.debug("Deactivate rule %s: no-op", rule_id)
            return False

        logger.info("Deactivated rule %s", rule_id)
        return True

    def update(self, rule_id, **changes) -> Rule:
        # Held across the read and the write so concurrent updates don't drop fields
        with self._lock:
            current = self.get(rule_id)
            if current is None:
                raise RuleNotFoundError(rule_id)

            cleaned = current.to_input().with_changes(**changes).validate()
            rule = self._write(f"""
                UPDATE categorization_rules
                SET name = %s, pattern = %s, pattern_type = %s, entity = %s,
                    category = %s, subcategory = %s, tags = %s, confidence = %s,
                    priority = %s, is_active = %s, created_by = %s
                WHERE rule_id = %s
                RETURNING {RULE_COLUMNS}
            """, self._params(cleaned) + (rule_id,))

        if rule is None:
            raise RuleNotFoundError(rule_id)

        report_invalid_pattern(rule)
        return rule

    @staticmethod
    def _params(rule_input: RuleInput) -> tuple:
        return (
            rule_input.name,
            rule_input.pattern,
            rule_input.pattern_type.value,
            rule_input.entity,
            rule_input.category,
            rule_input.subcategory,
            list(rule_input.tags),
            rule_input.confidence,
            rule_input.priority,
            rule_input.active,
            rule_input.created_by,
        )
