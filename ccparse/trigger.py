from __future__ import annotations

import re
from itertools import chain
from typing import Sequence, Union

Pattern = Union[str, re.Pattern[str]]


class TriggerPatternError(ValueError):
    """Exception raised for a trigger pattern which can never be used."""


class Trigger:
    """Decides whether an engine should try to parse a line.

    A line triggers if every pattern in `match` is found in it and no
    pattern in `dontmatch` is. Strings are searched literally, compiled
    regular expressions with `search`.

    For performance reasons: place easy to test and frequent patterns first
    and rare/expensive ones last, the tests stop at the first failure.

    Attributes:
        match (tuple[Pattern, ...]):
            patterns which must be found
        dontmatch (tuple[Pattern, ...]):
            patterns which must not be found
    """

    def __init__(
        self, match: Sequence[Pattern], dontmatch: Sequence[Pattern] = ()
    ) -> None:
        for pattern in chain(match, dontmatch):
            if not isinstance(pattern, (str, re.Pattern)):
                raise TriggerPatternError(
                    f"{pattern!r} is neither a string nor a compiled regular expression"
                )
        self.match: tuple[Pattern, ...] = tuple(match)
        self.dontmatch: tuple[Pattern, ...] = tuple(dontmatch)

    @staticmethod
    def regex(pattern: str) -> re.Pattern[str]:
        """Compiles a regular expression for use as a trigger pattern.

        Raises:
            TriggerPatternError: the expression is invalid
        """
        try:
            return re.compile(pattern)
        except re.error as e:
            raise TriggerPatternError(
                f"invalid regular expression {pattern!r}: {e}"
            ) from e

    def matches(self, line: str) -> bool:
        for pattern in self.match:
            if not found(pattern, line):
                return False
        for pattern in self.dontmatch:
            if found(pattern, line):
                return False
        return True

    def __repr__(self) -> str:
        return f"Trigger(match={self.match!r}, dontmatch={self.dontmatch!r})"


def found(pattern: Pattern, line: str) -> bool:
    if isinstance(pattern, str):
        return pattern in line
    return pattern.search(line) is not None