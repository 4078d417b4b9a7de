"""Shared pytest fixtures for auto-categorizer tests."""

import pytest

from autocategorizer.config import DatabaseConfig, Settings
from autocategorizer.core import (
    ClassificationEngine,
    InMemoryRuleStore,
    LearningCoordinator,
    PatternType,
    RuleInput,
)


@pytest.fixture
def store():
    """Create an empty in-memory rule store."""
    return InMemoryRuleStore()


@pytest.fixture
def engine(store):
    """Create a classification engine over the test store."""
    return ClassificationEngine(store)


@pytest.fixture
def coordinator(store):
    """Create a learning coordinator writing to the test store."""
    return LearningCoordinator(store)


@pytest.fixture
def continente_rule():
    """Single high-priority grocery rule."""
    return RuleInput(
        name="Continente",
        pattern="Continente",
        pattern_type=PatternType.CONTAINS,
        category="Alimentação",
        confidence=0.9,
        priority=10,
    )


@pytest.fixture
def continente_store(store, continente_rule):
    """Store holding only the Continente rule."""
    store.add(continente_rule)
    return store


@pytest.fixture
def sample_rules():
    """A small mixed rule set across several priority tiers."""
    return [
        RuleInput(
            name="Supermarket",
            pattern="supermercado",
            category="Alimentação",
            subcategory="Supermercado",
            tags=["groceries"],
            confidence=0.6,
            priority=3,
        ),
        RuleInput(
            name="Pingo Doce",
            pattern="pingo doce",
            pattern_type=PatternType.STARTS_WITH,
            entity="Pingo Doce",
            category="Alimentação",
            tags=["groceries", "pingo"],
            confidence=0.95,
            priority=10,
        ),
        RuleInput(
            name="Fuel",
            pattern=r"\b(galp|bp|repsol)\b",
            pattern_type=PatternType.REGEX,
            category="Transportes",
            subcategory="Combustível",
            tags=["car"],
            confidence=0.85,
            priority=8,
        ),
        RuleInput(
            name="Netflix",
            pattern="NETFLIX.COM",
            pattern_type=PatternType.EXACT,
            entity="Netflix",
            category="Lazer",
            subcategory="Streaming",
            confidence=0.99,
            priority=10,
        ),
    ]


@pytest.fixture
def populated_store(store, sample_rules):
    """Store holding the sample rule set."""
    for rule_input in sample_rules:
        store.add(rule_input)
    return store


@pytest.fixture
def settings():
    """Default settings with a dummy database."""
    return Settings(database=DatabaseConfig(password="test-password"))
