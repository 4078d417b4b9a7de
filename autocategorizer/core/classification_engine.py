"""
Classification Engine

Turns a transaction description into a scored Suggestion:
1. Ask the rule store for its active rules (priority order)
2. Test every rule against the normalized description
3. Merge the matches: first match wins per field, tags accumulate
4. Score the merged proposal with the confidence of the highest-priority
   rule that contributed to it

The engine only computes; deciding what to do with a suggestion is the
caller's job (see bands.py).
"""
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .bands import AUTO_APPLY_THRESHOLD, CONFIRM_THRESHOLD, Band, classify_band
from .models import Rule, Suggestion
from .rule_matcher import InvalidPatternError, RuleMatcher, normalize_description
from .rule_store import RuleStore

__all__ = [
    'AUTO_APPLY_THRESHOLD',
    'CONFIRM_THRESHOLD',
    'Band',
    'ClassificationEngine',
    'classify_band',
]

logger = logging.getLogger(__name__)

CLASSIFICATION_FIELDS = ('entity', 'category', 'subcategory')


class ClassificationEngine:
    """
    Suggests entity, category, subcategory and tags for a description
    """

    def __init__(self, store: RuleStore, matcher: Optional[RuleMatcher] = None):
        """
        Args:
            store: Rule store to read active rules from
            matcher: Pattern matcher (default: RuleMatcher())
        """
        self.store = store
        self.matcher = matcher or RuleMatcher()

    def classify(self, description: str, amount: float = 0.0) -> Suggestion:
        """
        Classify one transaction

        Args:
            description: Free-text transaction description
            amount: Transaction amount. Accepted for future amount-based
                rules; it does not affect matching or scoring yet.

        Returns:
            Suggestion (the empty one if nothing matched)
        """
        return self._classify(self.store.active_rules(), description)

    def classify_batch(self, items: Iterable[Tuple[str, float]]) -> List[Suggestion]:
        """
        Classify many (description, amount) pairs against one rule snapshot

        A rule learned while the batch runs does not affect it.
        """
        rules = self.store.active_rules()
        return [self._classify(rules, description) for description, _amount in items]

    def _classify(self, rules: Sequence[Rule], description: str) -> Suggestion:
        trimmed = description.strip() if description else ''
        matched, invalid = self.find_matches(rules, normalize_description(description), trimmed)

        if not matched:
            return Suggestion.empty(invalid)

        return self.merge(matched, invalid)

    def find_matches(self, rules: Sequence[Rule], normalized: str,
                     trimmed: Optional[str] = None) -> Tuple[List[Rule], List[int]]:
        """
        Test every rule, keeping priority order

        Args:
            rules: Rules in priority order
            normalized: Trimmed, case-folded description
            trimmed: Trimmed description with its original case, for regex rules

        Returns:
            (matching rules, ids of regex rules that failed to compile)
        """
        matched = []
        invalid = []

        for rule in rules:
            try:
                if self.matcher.match_rule(rule, normalized, trimmed):
                    matched.append(rule)
            except InvalidPatternError as e:
                logger.warning("%s; rule skipped", e)
                invalid.append(rule.id)

        return matched, invalid

    @staticmethod
    def merge(matched: Sequence[Rule], invalid_rule_ids: Optional[List[int]] = None) -> Suggestion:
        """
        Merge matching rules into one suggestion

        `matched` must be in priority order (highest first, insertion order
        within a tier). A field set by an earlier rule is never overwritten;
        tags are unioned in first-seen order.
        """
        suggestion = Suggestion(
            ai_processed=True,
            invalid_rule_ids=list(invalid_rule_ids or []),
        )
        scoring_rule = None

        for rule in matched:
            contributed = False

            for name in CLASSIFICATION_FIELDS:
                value = getattr(rule, name)
                if value and getattr(suggestion, name) is None:
                    setattr(suggestion, name, value)
                    contributed = True

            for tag in rule.tags:
                if tag not in suggestion.tags:
                    suggestion.tags.append(tag)
                    contributed = True

            if contributed and scoring_rule is None:
                scoring_rule = rule

            suggestion.source_rule_ids.append(rule.id)

        # Matching rules that propose nothing still count as a match
        suggestion.confidence = (scoring_rule or matched[0]).confidence
        return suggestion
