"""
Rule store backends
"""
from .postgres_rule_store import PostgresRuleStore

__all__ = ['PostgresRuleStore']
