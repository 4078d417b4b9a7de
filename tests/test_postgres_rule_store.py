"""Tests for the PostgreSQL rule store against a fake DB-API connection."""

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal

import psycopg2
import pytest

from autocategorizer.core import PatternType, RuleInput, RuleNotFoundError, ValidationError
from autocategorizer.core.errors import RuleStoreError
from autocategorizer.storage import PostgresRuleStore

CREATED_AT = datetime(2024, 1, 15, tzinfo=timezone.utc)


def make_row(rule_id=1, pattern="Continente", priority=10, active=True, tags=None):
    return (
        rule_id, pattern, pattern, "contains", None, "Alimentação", None,
        tags if tags is not None else ["groceries"], Decimal("0.900"), priority,
        active, "manual", CREATED_AT,
    )


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=()):
        self.conn.executed.append((" ".join(sql.split()), params))
        if self.conn.error is not None:
            raise self.conn.error

    def fetchall(self):
        return self.conn.results.pop(0)

    def fetchone(self):
        rows = self.conn.results.pop(0)
        return rows[0] if rows else None

    def close(self):
        self.conn.closed_cursors += 1


class FakeConnection:
    """Records statements and returns queued result sets."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed_cursors = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class PausingCursor(FakeCursor):
    def execute(self, sql, params=()):
        verb = sql.split()[0].upper()
        self.conn.executed.append((" ".join(sql.split()), params))
        self.conn.events.append(verb)
        if verb == self.conn.pause_on and not self.conn.paused.is_set():
            self.conn.paused.set()
            self.conn.resume.wait(timeout=5)
        if verb == self.conn.fail_on:
            raise psycopg2.OperationalError("connection lost")


class PausingConnection(FakeConnection):
    """Holds the first `pause_on` statement until resumed; `fail_on` statements raise."""

    def __init__(self, results=None, pause_on=None, fail_on=None):
        super().__init__(results)
        self.pause_on = pause_on
        self.fail_on = fail_on
        self.events = []
        self.paused = threading.Event()
        self.resume = threading.Event()

    def cursor(self):
        return PausingCursor(self)

    def commit(self):
        super().commit()
        self.events.append("COMMIT")

    def rollback(self):
        super().rollback()
        self.events.append("ROLLBACK")


class TestReads:
    """Tests for rule loading."""

    def test_active_rules_query_and_mapping(self):
        """Test that active rules come from one ordered query and map to Rules."""
        conn = FakeConnection(results=[[make_row(2, "galp", 10), make_row(1, "bp", 5)]])
        store = PostgresRuleStore(conn)

        rules = store.active_rules()

        sql, _ = conn.executed[0]
        assert "WHERE is_active = TRUE" in sql
        assert "ORDER BY priority DESC, rule_id ASC" in sql
        assert [r.id for r in rules] == [2, 1]
        assert isinstance(rules, tuple)

        rule = rules[0]
        assert rule.pattern_type == PatternType.CONTAINS
        assert rule.confidence == 0.9
        assert isinstance(rule.confidence, float)
        assert rule.tags == ("groceries",)
        assert rule.created_at == CREATED_AT

    def test_null_tags_become_empty(self):
        """Test that NULL tags map to an empty tuple."""
        row = make_row()
        conn = FakeConnection(results=[[row[:7] + (None,) + row[8:]]])

        assert PostgresRuleStore(conn).all_rules()[0].tags == ()

    def test_get_missing_returns_none(self):
        """Test that get returns None when no row is found."""
        conn = FakeConnection(results=[[]])
        assert PostgresRuleStore(conn).get(99) is None
        assert conn.executed[0][1] == (99,)

    def test_read_error_wrapped(self):
        """Test that driver errors become RuleStoreError after a rollback."""
        conn = FakeConnection(error=psycopg2.OperationalError("connection lost"))

        with pytest.raises(RuleStoreError):
            PostgresRuleStore(conn).active_rules()
        assert conn.rollbacks == 1


class TestWrites:
    """Tests for add, deactivate and update."""

    def test_add_inserts_and_commits(self):
        """Test that add runs one INSERT ... RETURNING and commits it."""
        conn = FakeConnection(results=[[make_row(5)]])
        store = PostgresRuleStore(conn)

        rule = store.add(RuleInput(
            pattern="Continente", category="Alimentação", tags=["groceries", "groceries"],
            confidence=0.9, priority=10,
        ))

        sql, params = conn.executed[0]
        assert sql.startswith("INSERT INTO categorization_rules")
        assert "RETURNING" in sql
        assert params == (
            "Continente", "Continente", "contains", None, "Alimentação", None,
            ["groceries"], 0.9, 10, True, "manual",
        )
        assert conn.commits == 1
        assert rule.id == 5

    def test_add_invalid_does_not_touch_database(self):
        """Test that validation happens before any statement runs."""
        conn = FakeConnection()

        with pytest.raises(ValidationError):
            PostgresRuleStore(conn).add(RuleInput(pattern="x", confidence=1.5))
        assert conn.executed == []

    def test_write_error_rolled_back(self):
        """Test that a failed INSERT is rolled back and wrapped."""
        conn = FakeConnection(error=psycopg2.IntegrityError("check violation"))

        with pytest.raises(RuleStoreError):
            PostgresRuleStore(conn).add(RuleInput(pattern="x"))
        assert conn.rollbacks == 1
        assert conn.commits == 0
        assert conn.closed_cursors == 1

    def test_deactivate_changes_active_rule(self):
        """Test that deactivate reports a change when a row was updated."""
        conn = FakeConnection(results=[[make_row(3, active=False)]])

        assert PostgresRuleStore(conn).deactivate(3) is True
        sql, params = conn.executed[0]
        assert "SET is_active = FALSE" in sql
        assert "AND is_active = TRUE" in sql
        assert params == (3,)

    def test_deactivate_noop(self):
        """Test that deactivating an absent or inactive rule is a no-op."""
        conn = FakeConnection(results=[[]])

        assert PostgresRuleStore(conn).deactivate(3) is False
        assert conn.rollbacks == 0

    def test_update(self):
        """Test that update merges changes over the stored rule."""
        conn = FakeConnection(results=[[make_row(4)], [make_row(4, priority=20)]])

        rule = PostgresRuleStore(conn).update(4, priority=20)

        sql, params = conn.executed[1]
        assert sql.startswith("UPDATE categorization_rules SET name = %s")
        assert params[8] == 20
        assert params[-1] == 4
        assert rule.priority == 20

    def test_update_unknown_rule(self):
        """Test that updating an absent rule raises RuleNotFoundError."""
        conn = FakeConnection(results=[[]])

        with pytest.raises(RuleNotFoundError):
            PostgresRuleStore(conn).update(4, priority=20)
        assert len(conn.executed) == 1

    def test_update_to_invalid_regex_is_reported(self, caplog):
        """Test that an update leaving a non-compiling regex is logged."""
        row = make_row(1, "([bad")
        conn = FakeConnection(results=[[make_row(1)], [row[:3] + ("regex",) + row[4:]]])

        with caplog.at_level(logging.WARNING):
            rule = PostgresRuleStore(conn).update(1, pattern="([bad", pattern_type="regex")

        assert rule.pattern_type == PatternType.REGEX
        assert "invalid regex" in caplog.text


class TestSharedConnection:
    """Tests for statement ordering on the shared connection."""

    def test_failed_read_waits_for_pending_write(self):
        """Test that a read's rollback cannot undo an uncommitted INSERT."""
        conn = PausingConnection(results=[[make_row(5)]], pause_on="INSERT", fail_on="SELECT")
        store = PostgresRuleStore(conn)
        added = []
        errors = []

        def read():
            try:
                store.active_rules()
            except RuleStoreError as e:
                errors.append(e)

        writer = threading.Thread(target=lambda: added.append(store.add(RuleInput(pattern="x"))))
        writer.start()
        assert conn.paused.wait(timeout=5)

        reader = threading.Thread(target=read)
        reader.start()
        reader.join(timeout=0.2)
        assert reader.is_alive()

        conn.resume.set()
        writer.join(timeout=5)
        reader.join(timeout=5)

        assert conn.events == ["INSERT", "COMMIT", "SELECT", "ROLLBACK"]
        assert [rule.id for rule in added] == [5]
        assert len(errors) == 1

    def test_concurrent_updates_do_not_drop_changes(self):
        """Test that an update re-reads the rule only after the previous update committed."""
        conn = PausingConnection(
            results=[
                [make_row(4)],
                [make_row(4, priority=20)],
                [make_row(4, priority=20)],
                [make_row(4, priority=20, tags=["fuel"])],
            ],
            pause_on="SELECT",
        )
        store = PostgresRuleStore(conn)

        first = threading.Thread(target=store.update, args=(4,), kwargs={"priority": 20})
        first.start()
        assert conn.paused.wait(timeout=5)

        second = threading.Thread(target=store.update, args=(4,), kwargs={"tags": ["fuel"]})
        second.start()
        second.join(timeout=0.2)
        assert second.is_alive()

        conn.resume.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert conn.events == ["SELECT", "COMMIT", "UPDATE", "COMMIT"] * 2
        _, params = conn.executed[-1]
        assert params[8] == 20
        assert params[6] == ["fuel"]
