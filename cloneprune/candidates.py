"""Choose a base function and one of its clones from a function registry.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, Optional, Tuple


class CandidateMatcher(ABC):
    @abstractmethod
    def is_possible_base(self, name: str) -> bool:
        ...

    @abstractmethod
    def is_clone(self, name: str, base_name: str) -> bool:
        ...


class NameMatcher(CandidateMatcher):
    """Match candidates by substrings of their names.

    :param base_marker: any function whose name contains this is a possible base.
    :param clone_marker: a clone of base b is any function whose name contains b + clone_marker.
    """
    def __init__(self, base_marker: str = "base", clone_marker: str = "_clone"):
        self.base_marker = base_marker
        self.clone_marker = clone_marker

    def is_possible_base(self, name: str) -> bool:
        return self.base_marker in name

    def is_clone(self, name: str, base_name: str) -> bool:
        return base_name + self.clone_marker in name


class PredicateMatcher(CandidateMatcher):
    def __init__(self, is_possible_base: Callable[[str], bool], is_clone: Callable[[str, str], bool]):
        self._is_possible_base = is_possible_base
        self._is_clone = is_clone

    def is_possible_base(self, name: str) -> bool:
        return self._is_possible_base(name)

    def is_clone(self, name: str, base_name: str) -> bool:
        return self._is_clone(name, base_name)


def _names(registry: Dict[str, Any]) -> Iterator[str]:
    # Sorted so that the choice does not depend on the order functions were registered in.
    return iter(sorted(registry))

def select(registry: Dict[str, Any], matcher: Optional[CandidateMatcher] = None) -> Tuple[Optional[str], Optional[str]]:
    """Pick the first possible base function and the first clone of it.

    :returns: (base name, clone name). Either may be None if no candidate matches; the clone is
        always None when the base is.
    """
    if matcher is None:
        matcher = NameMatcher()

    base_name = next((name for name in _names(registry) if matcher.is_possible_base(name)), None)
    if base_name is None:
        return None, None

    clone_name = next((name for name in _names(registry) if name != base_name and matcher.is_clone(name, base_name)), None)
    return base_name, clone_name
