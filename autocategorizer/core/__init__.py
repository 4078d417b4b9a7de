"""
Categorization core

Rule store, rule matcher, classification engine and learning coordinator.
"""
from .errors import (
    CategorizerError,
    ConfigError,
    RuleNotFoundError,
    RuleStoreError,
    ValidationError,
)
from .models import Band, PatternType, Rule, RuleInput, Suggestion
from .rule_store import InMemoryRuleStore, RuleStore
from .rule_matcher import RuleMatcher, normalize_description
from .classification_engine import (
    AUTO_APPLY_THRESHOLD,
    CONFIRM_THRESHOLD,
    ClassificationEngine,
    classify_band,
)
from .learning_coordinator import (
    LEARNED_RULE_CONFIDENCE,
    LEARNED_RULE_PRIORITY,
    LearningCoordinator,
)

__all__ = [
    'AUTO_APPLY_THRESHOLD',
    'CONFIRM_THRESHOLD',
    'LEARNED_RULE_CONFIDENCE',
    'LEARNED_RULE_PRIORITY',
    'Band',
    'CategorizerError',
    'ClassificationEngine',
    'ConfigError',
    'InMemoryRuleStore',
    'LearningCoordinator',
    'PatternType',
    'Rule',
    'RuleInput',
    'RuleMatcher',
    'RuleNotFoundError',
    'RuleStore',
    'RuleStoreError',
    'Suggestion',
    'ValidationError',
    'classify_band',
    'normalize_description',
]
