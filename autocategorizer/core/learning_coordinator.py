"""
Learning Coordinator

Turns a user's confirmation of a mid-confidence suggestion into a new rule.
A learned rule matches on the first word of the description only, so one
confirmation does not overfit to a full sentence.
"""
import logging
from typing import Optional

from .models import PatternType, Rule, RuleInput, Suggestion
from .rule_store import RuleStore

logger = logging.getLogger(__name__)

LEARNED_RULE_CONFIDENCE = 0.8
LEARNED_RULE_PRIORITY = 5


def first_token(description: str) -> str:
    """First whitespace-delimited word, or '' for a blank description"""
    parts = (description or '').split()
    return parts[0] if parts else ''


class LearningCoordinator:
    """
    Writes confirmed suggestions back to the rule store
    """

    def __init__(self, store: RuleStore):
        self.store = store

    def build_rule_input(self, description: str, suggestion: Suggestion) -> RuleInput:
        """Rule that would be learned from this description and suggestion"""
        label = suggestion.entity or description.strip()
        return RuleInput(
            name=f"Automatic rule - {label}",
            pattern=first_token(description),
            pattern_type=PatternType.CONTAINS,
            entity=suggestion.entity,
            category=suggestion.category,
            subcategory=suggestion.subcategory,
            tags=list(suggestion.tags),
            confidence=LEARNED_RULE_CONFIDENCE,
            priority=LEARNED_RULE_PRIORITY,
            active=True,
            created_by='learned',
        )

    def learn_from(self, description: str, amount: float, suggestion: Suggestion,
                   confirmed: bool) -> Optional[Rule]:
        """
        Learn a rule from the user's decision

        Args:
            description: Description the suggestion was computed for
            amount: Transaction amount (not used by learned rules)
            suggestion: Suggestion the user accepted or rejected
            confirmed: True if the user accepted

        Returns:
            The stored Rule, or None when the user rejected

        Raises:
            ValidationError: the description has no word to learn from
        """
        if not confirmed:
            logger.debug("Suggestion for %r rejected; nothing learned", description)
            return None

        rule = self.store.add(self.build_rule_input(description, suggestion))
        logger.info(
            "Learned rule %s: %r -> %s / %s",
            rule.id, rule.pattern, rule.category, rule.subcategory,
        )
        return rule
