"""
Transaction Auto-Categorizer

Rule-based categorization engine that proposes an entity, category,
subcategory and tags for a transaction description, scores the proposal
and learns new rules from user confirmations.
"""

__version__ = "1.0.0"
__author__ = "Andrew"

from .core import (
    Band,
    ClassificationEngine,
    InMemoryRuleStore,
    LearningCoordinator,
    PatternType,
    Rule,
    RuleInput,
    RuleStore,
    Suggestion,
    ValidationError,
    classify_band,
)

__all__ = [
    'Band',
    'ClassificationEngine',
    'InMemoryRuleStore',
    'LearningCoordinator',
    'PatternType',
    'Rule',
    'RuleInput',
    'RuleStore',
    'Suggestion',
    'ValidationError',
    'classify_band',
]
