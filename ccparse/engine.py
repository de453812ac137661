from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ccparse.builtin_info import BuiltInInfoSource, InfoStatus
from ccparse.result import Result
from ccparse.trigger import Trigger


class Engine(ABC):
    """Base class of the compiler command line parsing engines.

    An engine is bound to a trigger which selects the lines it should parse
    and keeps the result of the first line it parsed successfully until it
    is reset. Subclasses implement the dialect specific `parse`, see
    `ccparse.gcc.GccEngine`.

    Attributes:
        trigger (Trigger):
            decides which lines are parsed
        info_source (BuiltInInfoSource | None):
            if set, the compiler's built-in includes and defines are appended
            to every result
    """

    def __init__(
        self, trigger: Trigger, info_source: BuiltInInfoSource | None = None
    ) -> None:
        self.trigger = trigger
        self.info_source = info_source
        self._result: Result | None = None

    @property
    def result(self) -> Result | None:
        return self._result

    def reset(self) -> None:
        """Drops the result."""
        self._result = None

    @abstractmethod
    def parse(self, line: str) -> Result:
        """Extracts includes, defines, options and the compiler from `line`.

        Args:
            line (str): a compiler command line which passed the trigger

        Returns:
            Result:
                what was found

        Raises:
            ParseError: the line can't be parsed
        """
        pass

    def match(self, line: str) -> None:
        """Parses `line` if it passes the trigger and there is no result yet.

        Args:
            line (str): a compiler command line candidate

        Raises:
            ParseError: the line passed the trigger but parsing it failed
        """
        if self._result is not None:
            return

        if not self.trigger.matches(line):
            return

        logging.debug(f"{type(self).__name__} triggered by: {line.strip()}")
        result = self.parse(line)
        self.add_builtin_info(result)
        self._result = result

    def add_builtin_info(self, result: Result) -> None:
        if self.info_source is None or not result.compiler:
            return

        outcome = self.info_source.query(result.compiler)
        match outcome.status:
            case InfoStatus.FOUND:
                assert outcome.info is not None
                result.includes.extend(outcome.info.includes)
                result.defines.extend(outcome.info.defines)
            case InfoStatus.FAILED:
                logging.warning(
                    f"Could not retrieve built-in info of {result.compiler}: {outcome.error}"
                )
            case InfoStatus.DISABLED | InfoStatus.NO_DATA:
                pass
