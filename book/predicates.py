"""
Raw-line predicates for search.

A raw-line predicate is evaluated against the undecoded text of a line,
not against its parsed fields: a text or tag filter matches if it occurs
anywhere in the line (key, target or tags). Field-aware predicates can be
added alongside these without changing how search works.

Predicates combine with &, | and ~.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from book.models import SearchQuery


class LinePredicate(ABC):
    """
    Abstract base for raw-line predicates.

    A predicate is a function: str -> bool
    """

    @abstractmethod
    def matches(self, line: str) -> bool:
        """Test if a raw line matches this predicate."""
        pass

    def __call__(self, line: str) -> bool:
        return self.matches(line)

    def __and__(self, other: "LinePredicate") -> "LinePredicate":
        return CompoundPredicate("all", [self, other])

    def __or__(self, other: "LinePredicate") -> "LinePredicate":
        return CompoundPredicate("any", [self, other])

    def __invert__(self) -> "LinePredicate":
        return CompoundPredicate("not", [self])


@dataclass
class TruePredicate(LinePredicate):
    """Always matches."""

    def matches(self, line: str) -> bool:
        return True


@dataclass
class TextPredicate(LinePredicate):
    """Match lines containing text. None or "" matches everything."""
    text: Optional[str] = None

    def matches(self, line: str) -> bool:
        if not self.text:
            return True
        return self.text in line


@dataclass
class AnyTagPredicate(LinePredicate):
    """
    Match lines containing any of the given tags as a substring.

    The tags are not restricted to the tag fields: "dev" also matches a
    target of https://dev.example.com. None matches everything; an empty
    list matches nothing.
    """
    tags: Optional[List[str]] = None

    def matches(self, line: str) -> bool:
        if self.tags is None:
            return True
        return any(tag in line for tag in self.tags)


@dataclass
class CompoundPredicate(LinePredicate):
    """Combine predicates with 'all', 'any' or 'not'."""
    op: str
    predicates: List[LinePredicate]

    def matches(self, line: str) -> bool:
        if self.op == "all":
            return all(p.matches(line) for p in self.predicates)
        elif self.op == "any":
            return any(p.matches(line) for p in self.predicates)
        elif self.op == "not":
            return not self.predicates[0].matches(line)
        raise ValueError(f"Unknown operator: {self.op}")


def predicate_for(query: Optional[SearchQuery]) -> LinePredicate:
    """Build the raw-line predicate for a search query."""
    if query is None:
        return TruePredicate()
    return TextPredicate(query.text) & AnyTagPredicate(query.tags)
