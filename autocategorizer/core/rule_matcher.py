"""
Rule Matcher

Tests a single rule's pattern against a transaction description.
Supported pattern types: contains, startsWith, endsWith, exact, regex.
Matching is always case-insensitive.
"""
import functools
import re
from typing import Optional

from .models import PatternType, Rule


def normalize_description(description: Optional[str]) -> str:
    """Trim and case-fold a description before matching"""
    if not description:
        return ''
    return description.strip().casefold()


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str):
    """Compiled case-insensitive regex; re.error propagates and is not cached"""
    return re.compile(pattern, re.IGNORECASE)


class InvalidPatternError(Exception):
    """A regex rule's pattern does not compile"""

    def __init__(self, rule: Rule, error: re.error):
        super().__init__(f"Invalid regex in rule {rule.id}: {rule.pattern!r} ({error})")
        self.rule = rule
        self.error = error


class RuleMatcher:
    """
    Dispatches on a rule's pattern type

    Stateless: the same rule and description always give the same answer.
    """

    def match_rule(self, rule: Rule, normalized: str, trimmed: Optional[str] = None) -> bool:
        """
        Check if a rule matches an already normalized description

        Args:
            rule: Rule to test
            normalized: Output of normalize_description()
            trimmed: The description stripped but not case-folded. Regex
                rules search this with re.IGNORECASE, since case-folding
                rewrites characters such as 'ß' that a regex may spell out.
                Defaults to `normalized`.

        Returns:
            True if the rule's pattern matches

        Raises:
            InvalidPatternError: regex rule whose pattern does not compile
        """
        if not normalized:
            return False

        pattern_type = rule.pattern_type
        pattern = rule.pattern.casefold()

        if pattern_type == PatternType.CONTAINS:
            return pattern in normalized
        if pattern_type == PatternType.STARTS_WITH:
            return normalized.startswith(pattern)
        if pattern_type == PatternType.ENDS_WITH:
            return normalized.endswith(pattern)
        if pattern_type == PatternType.EXACT:
            return normalized == normalize_description(rule.pattern)
        if pattern_type == PatternType.REGEX:
            try:
                compiled = compile_pattern(rule.pattern)
            except re.error as e:
                raise InvalidPatternError(rule, e) from e
            return compiled.search(normalized if trimmed is None else trimmed) is not None

        # PatternType is closed; anything else is a programming error
        raise ValueError(f"Unsupported pattern type: {pattern_type!r}")

    def matches(self, rule: Rule, description: str) -> bool:
        """Convenience wrapper that normalizes `description` first"""
        trimmed = description.strip() if description else ''
        return self.match_rule(rule, normalize_description(description), trimmed)
