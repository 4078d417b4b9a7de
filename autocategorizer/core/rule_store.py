"""
Rule Store

Owns the set of categorization rules. The engine reads active rules from
here and the learning coordinator writes confirmed rules back.

Rules are never deleted, only deactivated, so the full history stays
available for audit.
"""
import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import List, Optional, Tuple

from .errors import RuleNotFoundError
from .models import PatternType, Rule, RuleInput

logger = logging.getLogger(__name__)


def report_invalid_pattern(rule: Rule):
    """Log a stored regex rule that will never match because it does not compile"""
    if rule.pattern_type != PatternType.REGEX:
        return
    try:
        re.compile(rule.pattern)
    except re.error as e:
        logger.warning("Rule %s has an invalid regex %r (%s); it will never match",
                       rule.id, rule.pattern, e)


def order_active(rules) -> Tuple[Rule, ...]:
    """
    Active rules, highest priority first

    `rules` must already be in insertion order; sorted() is stable, so rules
    sharing a priority keep that order.
    """
    active = [rule for rule in rules if rule.active]
    return tuple(sorted(active, key=lambda rule: -rule.priority))


class RuleStore(ABC):
    """
    Storage contract for categorization rules

    Implementations must make add/update/deactivate all-or-nothing with
    respect to active_rules(): a reader sees the rule set either before or
    after a write, never a mix.
    """

    @abstractmethod
    def add(self, rule_input: RuleInput) -> Rule:
        """
        Validate and store a new rule

        Returns:
            The stored Rule with its assigned id

        Raises:
            ValidationError: if the input is rejected (nothing is stored)
        """

    @abstractmethod
    def active_rules(self) -> Tuple[Rule, ...]:
        """Active rules ordered by priority desc, then insertion order"""

    @abstractmethod
    def all_rules(self) -> Tuple[Rule, ...]:
        """Every rule, active or not, in insertion order"""

    @abstractmethod
    def get(self, rule_id) -> Optional[Rule]:
        """Rule by id, or None"""

    @abstractmethod
    def deactivate(self, rule_id) -> bool:
        """
        Mark a rule inactive

        Idempotent: an unknown or already inactive rule is a no-op.

        Returns:
            True if a rule changed state
        """

    @abstractmethod
    def update(self, rule_id, **changes) -> Rule:
        """
        Replace fields of an existing rule

        Raises:
            RuleNotFoundError: no rule with this id
            ValidationError: the updated rule would be invalid
        """

    def search(self, term: str) -> List[Rule]:
        """Rules whose name or pattern contains `term` (case-insensitive)"""
        needle = term.casefold()
        return [
            rule for rule in self.all_rules()
            if needle in rule.name.casefold() or needle in rule.pattern.casefold()
        ]

    def count_active(self) -> int:
        return len(self.active_rules())


class InMemoryRuleStore(RuleStore):
    """
    Process-local rule store

    Writers build a new immutable tuple under a lock and swap it in with a
    single assignment; readers just take the current tuple. A classification
    therefore always works on one consistent snapshot.
    """

    def __init__(self, rules: Optional[List[RuleInput]] = None):
        self._lock = threading.RLock()
        self._rules: Tuple[Rule, ...] = ()
        self._active: Tuple[Rule, ...] = ()
        self._next_id = 1

        for rule_input in rules or []:
            self.add(rule_input)

    def _publish(self, rules: Tuple[Rule, ...]):
        active = order_active(rules)
        # Readers take self._active without the lock
        self._rules, self._active = rules, active

    def add(self, rule_input: RuleInput) -> Rule:
        cleaned = rule_input.validate()

        with self._lock:
            rule = Rule.from_input(self._next_id, cleaned)
            self._next_id += 1
            self._publish(self._rules + (rule,))

        report_invalid_pattern(rule)
        logger.debug("Stored rule %s (%s %r)", rule.id, rule.pattern_type.value, rule.pattern)
        return rule

    def active_rules(self) -> Tuple[Rule, ...]:
        return self._active

    def all_rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def get(self, rule_id) -> Optional[Rule]:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def deactivate(self, rule_id) -> bool:
        with self._lock:
            rule = self.get(rule_id)
            if rule is None or not rule.active:
                logger.debug("Deactivate rule %s: no-op", rule_id)
                return False

            self._publish(self._replace(replace(rule, active=False)))

        logger.info("Deactivated rule %s", rule_id)
        return True

    def update(self, rule_id, **changes) -> Rule:
        with self._lock:
            rule = self.get(rule_id)
            if rule is None:
                raise RuleNotFoundError(rule_id)

            edited = rule.to_input().with_changes(**changes).validate()
            updated = Rule.from_input(rule.id, edited, created_at=rule.created_at)
            self._publish(self._replace(updated))

        report_invalid_pattern(updated)
        return updated

    def _replace(self, updated: Rule) -> Tuple[Rule, ...]:
        return tuple(updated if rule.id == updated.id else rule for rule in self._rules)
