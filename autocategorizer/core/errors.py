"""
Exceptions raised by the categorization core
"""


class CategorizerError(Exception):
    """Base class for all categorizer errors"""


class ValidationError(CategorizerError):
    """Rule input was rejected; nothing was stored"""


class RuleNotFoundError(CategorizerError):
    """No rule exists with the requested id"""

    def __init__(self, rule_id):
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class RuleStoreError(CategorizerError):
    """The storage backend failed to read or write rules"""


class ConfigError(CategorizerError):
    """Configuration value could not be parsed"""
