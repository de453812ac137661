from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ccparse.engine import Engine
from ccparse.result import Result
from ccparse.utils import ParseError


class Dispatcher:
    """Feeds compiler command line candidates to a list of engines.

    The first result produced by any engine is kept until `reset` is called,
    later lines are ignored.

    Example:

    dispatcher = Dispatcher([GccEngine(GccEngine.default_trigger())])
    result = dispatcher.scan(open("build.log"))
    """

    def __init__(self, engines: Sequence[Engine]) -> None:
        self.engines = list(engines)
        self._result: Result | None = None

    @property
    def result(self) -> Result | None:
        return self._result

    def reset(self) -> None:
        for engine in self.engines:
            engine.reset()
        self._result = None

    def parse(self, line: str) -> None:
        """Passes `line` to the engines in order until one has a result.

        An engine failing on the line is logged and skipped.
        """
        if self._result is not None:
            return

        for engine in self.engines:
            try:
                engine.match(line)
            except ParseError as e:
                logging.warning(f"{type(engine).__name__} failed to parse line: {e}")
                continue
            if engine.result is not None:
                self._result = engine.result
                return

    def scan(self, lines: Iterable[str]) -> Result | None:
        """Parses `lines` until there is a result.

        Returns:
            Result | None:
                the result (also available via `result`)
        """
        for line in lines:
            self.parse(line)
            if self._result is not None:
                break
        return self._result
