"""
Data structures for categorization rules and suggestions
"""
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .bands import Band, classify_band
from .errors import ValidationError


class PatternType(str, Enum):
    """How a rule's pattern is tested against a description"""
    CONTAINS = 'contains'
    STARTS_WITH = 'startsWith'
    ENDS_WITH = 'endsWith'
    EXACT = 'exact'
    REGEX = 'regex'

    @classmethod
    def parse(cls, value) -> 'PatternType':
        """Accept a PatternType or its string value"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(p.value for p in cls)
            raise ValidationError(
                f"Unknown pattern type {value!r} (expected one of: {valid})"
            ) from None


def unique_tags(tags: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Drop blank and repeated tags, keeping first-seen order"""
    if isinstance(tags, str):
        tags = [tags]
    seen = []
    for tag in tags or ():
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


@dataclass
class RuleInput:
    """Fields supplied when creating a rule; the store assigns the id"""
    pattern: str
    pattern_type: PatternType = PatternType.CONTAINS
    name: str = ''
    entity: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    tags: Iterable[str] = ()
    confidence: float = 0.8
    priority: int = 1
    active: bool = True
    created_by: str = 'manual'

    def with_changes(self, **changes) -> 'RuleInput':
        """Copy with some fields replaced; unknown field names are rejected"""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValidationError(f"Unknown rule field(s): {', '.join(unknown)}")
        return replace(self, **changes)

    def validate(self) -> 'RuleInput':
        """
        Check the input and return a cleaned copy

        Raises:
            ValidationError: pattern empty, confidence outside [0, 1],
                unknown pattern type, non-integer priority or non-string tags
        """
        if not isinstance(self.pattern, str) or not self.pattern.strip():
            raise ValidationError("Rule pattern must not be empty")

        try:
            confidence = float(self.confidence)
        except (TypeError, ValueError):
            raise ValidationError(f"Confidence must be a number, got {self.confidence!r}") from None
        if not 0.0 <= confidence <= 1.0:
            raise ValidationError(f"Confidence must be within [0, 1], got {confidence}")

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValidationError(f"Priority must be an integer, got {self.priority!r}")

        tags = [self.tags] if isinstance(self.tags, str) else self.tags
        try:
            tags = list(tags or ())
        except TypeError:
            raise ValidationError(f"Tags must be a list of strings, got {self.tags!r}") from None
        bad_tags = [tag for tag in tags if not isinstance(tag, str)]
        if bad_tags:
            raise ValidationError(f"Tags must be strings, got {bad_tags[0]!r}")

        return RuleInput(
            pattern=self.pattern,
            pattern_type=PatternType.parse(self.pattern_type),
            name=self.name or self.pattern,
            entity=self.entity or None,
            category=self.category or None,
            subcategory=self.subcategory or None,
            tags=unique_tags(tags),
            confidence=confidence,
            priority=self.priority,
            active=bool(self.active),
            created_by=self.created_by,
        )


@dataclass(frozen=True)
class Rule:
    """A stored pattern-to-classification mapping"""
    id: int
    name: str
    pattern: str
    pattern_type: PatternType
    entity: Optional[str]
    category: Optional[str]
    subcategory: Optional[str]
    tags: Tuple[str, ...]
    confidence: float
    priority: int
    active: bool = True
    created_by: str = 'manual'
    created_at: Optional[datetime] = None

    @classmethod
    def from_input(cls, rule_id: int, rule_input: RuleInput,
                   created_at: Optional[datetime] = None) -> 'Rule':
        """Build a rule from already validated input"""
        return cls(
            id=rule_id,
            name=rule_input.name,
            pattern=rule_input.pattern,
            pattern_type=rule_input.pattern_type,
            entity=rule_input.entity,
            category=rule_input.category,
            subcategory=rule_input.subcategory,
            tags=tuple(rule_input.tags),
            confidence=rule_input.confidence,
            priority=rule_input.priority,
            active=rule_input.active,
            created_by=rule_input.created_by,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def to_input(self) -> RuleInput:
        """Editable copy of this rule's fields"""
        return RuleInput(
            pattern=self.pattern,
            pattern_type=self.pattern_type,
            name=self.name,
            entity=self.entity,
            category=self.category,
            subcategory=self.subcategory,
            tags=self.tags,
            confidence=self.confidence,
            priority=self.priority,
            active=self.active,
            created_by=self.created_by,
        )


@dataclass
class Suggestion:
    """
    Merged classification proposal for one description

    Not persisted. Recomputed every time the description changes.
    """
    entity: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    confidence: float = 0.0
    ai_processed: bool = False
    source_rule_ids: List[int] = field(default_factory=list)
    invalid_rule_ids: List[int] = field(default_factory=list)

    @classmethod
    def empty(cls, invalid_rule_ids: Optional[List[int]] = None) -> 'Suggestion':
        """The no-match suggestion"""
        return cls(invalid_rule_ids=list(invalid_rule_ids or []))

    @property
    def band(self) -> Band:
        return classify_band(self.confidence)

    def reasoning(self) -> str:
        """Short explanation of where the proposal came from"""
        if not self.ai_processed:
            return "No matching rule"

        parts = [self.entity, self.category, self.subcategory]
        proposal = ' / '.join(p for p in parts if p) or 'tags only'
        rules = ', '.join(str(rule_id) for rule_id in self.source_rule_ids)
        label = 'rule' if len(self.source_rule_ids) == 1 else 'rules'
        return f"Matched {label} {rules} -> {proposal} ({self.confidence:.0%} confidence)"

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['band'] = self.band.value
        return data
