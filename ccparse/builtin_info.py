""" Compiler built-in information: the include directories and macros a
compiler uses without them being visible on its command line.

Querying a compiler means running it, which is slow compared to parsing a
command line. Every source therefore remembers the outcome per compiler
path, and `GccBuiltInInfoSource` can additionally persist what it found in
an `InfoDatabase`.

Example:

source = GccBuiltInInfoSource()
outcome = source.query("/usr/bin/g++")
if outcome.status == InfoStatus.FOUND:
    print(outcome.info.includes)
"""
from __future__ import annotations

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ccparse.utils import run_cmd

if TYPE_CHECKING:
    from ccparse.database import InfoDatabase


class BuiltInInfoError(Exception):
    """Exception raised when a compiler's output can't be interpreted."""


@dataclass(frozen=True)
class BuiltInInfo:
    """Built-in include directories and macro definitions of a compiler.

    Attributes:
        includes (tuple[str, ...]):
            include directories in search order
        defines (tuple[str, ...]):
            macro definitions in the same format as the parser produces,
            i.e. "NAME" or "NAME=VALUE"
    """

    includes: tuple[str, ...] = tuple()
    defines: tuple[str, ...] = tuple()


class InfoStatus(Enum):
    DISABLED = 0
    NO_DATA = 1
    FAILED = 2
    FOUND = 3


@dataclass(frozen=True)
class InfoOutcome:
    """The outcome of querying a built-in info source.

    `info` is only set for FOUND and `error` only for FAILED.
    """

    status: InfoStatus
    info: BuiltInInfo | None = None
    error: Exception | None = None

    @staticmethod
    def disabled() -> InfoOutcome:
        return InfoOutcome(InfoStatus.DISABLED)

    @staticmethod
    def no_data() -> InfoOutcome:
        return InfoOutcome(InfoStatus.NO_DATA)

    @staticmethod
    def failed(error: Exception) -> InfoOutcome:
        return InfoOutcome(InfoStatus.FAILED, error=error)

    @staticmethod
    def found(info: BuiltInInfo) -> InfoOutcome:
        return InfoOutcome(InfoStatus.FOUND, info=info)


class BuiltInInfoSource(ABC):
    """Base class of the built-in info sources.

    Attributes:
        enabled (bool):
            a disabled source answers every query with DISABLED
    """

    def __init__(self) -> None:
        self.enabled = True
        self._cache: dict[str, InfoOutcome] = {}

    @abstractmethod
    def collect(self, compiler: str) -> BuiltInInfo | None:
        """Retrieves the built-in info of `compiler`.

        Args:
            compiler (str): compiler executable as found on the command line

        Returns:
            BuiltInInfo | None:
                the info or None if the compiler has nothing to report

        Raises:
            BuiltInInfoError, OSError, subprocess.SubprocessError:
                the query failed
        """
        pass

    def query(self, compiler: str) -> InfoOutcome:
        """Returns the (cached) built-in info of `compiler`.

        Failures are cached as well, a compiler which can't be run is not
        retried until `clear_cache` is called.
        """
        if not self.enabled:
            return InfoOutcome.disabled()

        if compiler in self._cache:
            logging.debug(f"Using cached built-in info of {compiler}")
            return self._cache[compiler]

        try:
            info = self.collect(compiler)
        except (BuiltInInfoError, OSError, subprocess.SubprocessError) as e:
            outcome = InfoOutcome.failed(e)
        else:
            outcome = (
                InfoOutcome.found(info) if info is not None else InfoOutcome.no_data()
            )

        self._cache[compiler] = outcome
        return outcome

    def clear_cache(self) -> None:
        self._cache.clear()


INCLUDE_LIST_START = "#include <...> search starts here:"
INCLUDE_LIST_END = "End of search list."
FRAMEWORK_SUFFIX = "(framework directory)"
DEFINE_RE = re.compile(r"^#define\s+(\S+)(?:\s+(.*))?$")


def parse_gcc_builtin_output(stdout: str, stderr: str) -> BuiltInInfo:
    """Parses the output of `gcc -E -dM -v -`.

    Args:
        stdout (str): the macro dump
        stderr (str): the verbose output containing the include search list

    Returns:
        BuiltInInfo:
            the parsed include directories and macros

    Raises:
        BuiltInInfoError: the include search list is missing
    """
    lines = stderr.splitlines()
    try:
        start = next(
            i for i, line in enumerate(lines) if INCLUDE_LIST_START in line
        )
        end = next(
            i
            for i, line in enumerate(lines)
            if i > start and INCLUDE_LIST_END in line
        )
    except StopIteration:
        raise BuiltInInfoError("no include search list in compiler output")

    includes = []
    for line in lines[start + 1 : end]:
        path = line.strip()
        # macOS lists frameworks as "/path (framework directory)"
        if path.endswith(FRAMEWORK_SUFFIX):
            path = path[: -len(FRAMEWORK_SUFFIX)].strip()
        if path:
            includes.append(path)

    defines = []
    for line in stdout.splitlines():
        m = DEFINE_RE.match(line.strip())
        if not m:
            continue
        name, value = m.group(1), m.group(2)
        defines.append(f"{name}={value}" if value else name)

    return BuiltInInfo(tuple(includes), tuple(defines))


class GccBuiltInInfoSource(BuiltInInfoSource):
    """Retrieves built-in info from gcc compatible compilers.

    The compiler is run once per path as
    `<compiler> -x<language> -E -dM -v -` on empty input.

    Attributes:
        database (InfoDatabase | None):
            persistent cache consulted before running a compiler
        timeout (int | None):
            seconds to wait for the compiler
        language (str):
            the language passed to -x
    """

    def __init__(
        self,
        database: InfoDatabase | None = None,
        timeout: int | None = 10,
        language: str = "c++",
    ) -> None:
        super().__init__()
        self.database = database
        self.timeout = timeout
        self.language = language

    def collect(self, compiler: str) -> BuiltInInfo | None:
        if self.database:
            stored = self.database.load(compiler)
            if stored is not None:
                logging.debug(f"Loaded built-in info of {compiler} from database")
                return stored

        cmd = [compiler, f"-x{self.language}", "-E", "-dM", "-v", "-"]
        logging.debug(f"Retrieving built-in info via {' '.join(cmd)}")
        output = run_cmd(cmd, input=b"", timeout=self.timeout)
        info = parse_gcc_builtin_output(output.stdout, output.stderr)

        if self.database:
            self.database.store(compiler, info)
        return info
