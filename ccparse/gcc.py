""" Command line parsing for the gcc compiler family.

Every argument of a command line is classified by the first matching rule
of `RULES` and the resulting `Classification` is then applied to the
`Result`. Response files (@file) are parsed recursively.

Example:

engine = GccEngine(GccEngine.default_trigger("Blink.ino"))
engine.match(line)
if engine.result:
    print(engine.result.includes)
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from ccparse.builtin_info import BuiltInInfoSource, GccBuiltInInfoSource
from ccparse.engine import Engine
from ccparse.result import CppStandard, Result
from ccparse.tokenizer import tokenize
from ccparse.trigger import Trigger
from ccparse.utils import FileReader, ParseError, read_text_file

# https://gcc.gnu.org/onlinedocs/gcc/Directory-Options.html
DIRECTORY_OPTION_KEYWORDS = (
    "prefix",
    "withprefixbefore",
    "withprefix",
    "sysroot",
    "multilib",
    "plugindir",
    "quote",
    "system",
    "dirafter",
)

DirectoryOptions = dict[str, list[str]]


class ResponseFileRecursionError(ParseError):
    """Exception raised for response files which include themselves or nest
    too deeply."""


class ArgumentKind(Enum):
    DEFINE = 0
    INCLUDE = 1
    COMPILER = 2
    DIRECTORY_OPTION = 3
    RESPONSE_FILE = 4
    TRASH = 5
    OPTION = 6
    RESIDUAL = 7


@dataclass(frozen=True)
class Classification:
    """What an argument is.

    Attributes:
        kind (ArgumentKind):
            the rule which matched
        arg (str):
            the (unquoted) argument
        value (str):
            the payload, e.g. the macro without -D or the response file path
        keyword (str | None):
            the directory option keyword (DIRECTORY_OPTION only)
    """

    kind: ArgumentKind
    arg: str
    value: str
    keyword: str | None = None


RULES: tuple[tuple[ArgumentKind, re.Pattern[str]], ...] = (
    (ArgumentKind.DEFINE, re.compile(r"^-D(.+)")),
    (ArgumentKind.INCLUDE, re.compile(r"^-I(.+)")),
    (ArgumentKind.COMPILER, re.compile(r"^(?![-@]).*(?:^|[/\\-])g\+\+(?:\.exe)?$")),
    (
        ArgumentKind.DIRECTORY_OPTION,
        re.compile(rf"^-i({'|'.join(DIRECTORY_OPTION_KEYWORDS)})\s?(.+)$"),
    ),
    (ArgumentKind.RESPONSE_FILE, re.compile(r"^@\s?(.+)$")),
    (ArgumentKind.TRASH, re.compile(r"^-o|^-O|^-g|^-c|cpp(?:\.o)?$")),
    (ArgumentKind.OPTION, re.compile(r"^-")),
    (ArgumentKind.RESIDUAL, re.compile(r"")),
)

# where classification of a response file argument continues after expansion
AFTER_RESPONSE_FILE = next(
    i + 1 for i, (kind, _) in enumerate(RULES) if kind == ArgumentKind.RESPONSE_FILE
)

QUOTED_ARG_RE = re.compile(r'^"(.+)"$')

BARE_DIRECTORY_OPTION_RE = re.compile(
    rf"^-i(?:{'|'.join(DIRECTORY_OPTION_KEYWORDS)})$"
)


def unquote(arg: str) -> str:
    """Unpacks arguments which are quoted as a whole, e.g.

      "-DMBEDTLS_CONFIG_FILE=\\"mbedtls/esp_config.h\\""

    becomes -DMBEDTLS_CONFIG_FILE="mbedtls/esp_config.h"
    """
    m = QUOTED_ARG_RE.match(arg)
    if not m:
        return arg
    return m.group(1).replace('\\"', '"')


def join_directory_options(args: list[str]) -> list[str]:
    """Joins directory options given as two arguments, e.g. "-isystem /path",
    into one argument "-isystem /path"."""
    joined = []
    it = iter(args)
    for arg in it:
        if BARE_DIRECTORY_OPTION_RE.match(arg):
            path = next(it, None)
            if path is not None:
                arg = f"{arg} {path}"
        joined.append(arg)
    return joined


def classify(arg: str, start: int = 0) -> Classification:
    """Classifies an (unquoted) argument with the first matching rule.

    Args:
        arg (str): the argument
        start (int): index of the first rule in `RULES` to try

    Returns:
        Classification:
            the classification, RESIDUAL if nothing else matched
    """
    for kind, regex in RULES[start:]:
        m = regex.search(arg)
        if not m:
            continue
        match kind:
            case (
                ArgumentKind.DEFINE | ArgumentKind.INCLUDE | ArgumentKind.RESPONSE_FILE
            ):
                return Classification(kind, arg, m.group(1))
            case ArgumentKind.DIRECTORY_OPTION:
                return Classification(kind, arg, m.group(2), keyword=m.group(1))
            case _:
                return Classification(kind, arg, arg)
    raise AssertionError("the residual rule matches everything")


CPP_STANDARD_OPTION_RE = re.compile(r"^-std=(?:c\+\+|gnu\+\+)([0-9]+)$")

CPP_STANDARDS = {
    "98": CppStandard.CPP98,
    "11": CppStandard.CPP11,
    "14": CppStandard.CPP14,
    "17": CppStandard.CPP17,
    "20": CppStandard.CPP20,
}


def parse_cpp_standard(result: Result) -> None:
    """Sets `result.cpp_standard` from the first -std=c++NN or -std=gnu++NN
    option with a known NN.

    See https://gcc.gnu.org/projects/cxx-status.html
    """
    for option in result.options:
        m = CPP_STANDARD_OPTION_RE.match(option)
        if not m:
            continue
        std = CPP_STANDARDS.get(m.group(1))
        if std:
            result.cpp_standard = std
            return


class GccEngine(Engine):
    """Compiler command line parsing engine for gcc.

    Attributes:
        directory_options (DirectoryOptions):
            gcc directory options (-iprefix, -isystem, ...) seen so far; kept
            for the whole lifetime of the engine since e.g. a -iprefix applies
            to later -iwithprefix options
        file_reader (FileReader):
            reads response files
        working_dir (str | None):
            directory relative response file paths are resolved against
        max_response_file_depth (int):
            how deep response files may be nested
    """

    def __init__(
        self,
        trigger: Trigger,
        directory_options: Mapping[str, list[str]] | None = None,
        info_source: BuiltInInfoSource | None = None,
        file_reader: FileReader = read_text_file,
        working_dir: str | None = None,
        max_response_file_depth: int = 32,
    ) -> None:
        super().__init__(
            trigger, info_source if info_source is not None else GccBuiltInInfoSource()
        )
        self.directory_options: DirectoryOptions = {}
        if directory_options:
            for keyword, paths in directory_options.items():
                self.directory_options[keyword] = list(paths)
        self.file_reader = file_reader
        self.working_dir = working_dir
        self.max_response_file_depth = max_response_file_depth

    @staticmethod
    def default_trigger(source: str | None = None) -> Trigger:
        """The trigger for g++ compiling a file, but not for Arduino's
        library detection runs which output to /dev/null.

        Args:
            source (str | None):
                if set, the line must also contain f"{source}.cpp.o", i.e.
                compile the given sketch
        """
        patterns: list[str | re.Pattern[str]] = [
            # make sure we're running g++
            re.compile(r'(?:^|[\s"/\\-])g\+\+(?:\.exe)?"?\s+'),
            # make sure we're compiling
            re.compile(r"\s+-c\s+"),
        ]
        if source:
            patterns.append(f"{source}.cpp.o")
        return Trigger(patterns, [re.compile(r"-o\s/dev/null")])

    def parse(self, line: str) -> Result:
        return self.parse_args(line, self.directory_options, ())

    def parse_args(
        self,
        line: str,
        directory_options: DirectoryOptions,
        response_files: tuple[str, ...],
    ) -> Result:
        """Parses a command line or the contents of a response file.

        Args:
            line (str): the arguments
            directory_options (DirectoryOptions): updated with the directory
                options found in `line`
            response_files (tuple[str, ...]): the response files currently
                being expanded, outermost first

        Returns:
            Result:
                the parsed arguments
        """
        result = Result()

        args = join_directory_options([unquote(arg) for arg in tokenize(line)])
        for arg in args:
            c = classify(arg)
            if c.kind == ArgumentKind.RESPONSE_FILE:
                self.expand_response_file(
                    c.value, result, directory_options, response_files
                )
                # the @file argument itself is classified as well
                c = classify(c.arg, AFTER_RESPONSE_FILE)
            self.apply(c, result, directory_options)

        parse_cpp_standard(result)
        return result

    def apply(
        self, c: Classification, result: Result, directory_options: DirectoryOptions
    ) -> None:
        match c.kind:
            case ArgumentKind.DEFINE:
                result.defines.append(c.value)
            case ArgumentKind.INCLUDE:
                result.includes.append(c.value)
            case ArgumentKind.COMPILER:
                if not result.compiler:
                    result.compiler = c.value
            case ArgumentKind.DIRECTORY_OPTION:
                assert c.keyword is not None
                apply_directory_option(c.keyword, c.value, result, directory_options)
            case ArgumentKind.OPTION:
                result.options.append(c.value)
            case ArgumentKind.TRASH | ArgumentKind.RESIDUAL:
                result.trash.append(c.value)
            case ArgumentKind.RESPONSE_FILE:
                raise AssertionError("response files are expanded before")

    def expand_response_file(
        self,
        path: str,
        result: Result,
        directory_options: DirectoryOptions,
        response_files: tuple[str, ...],
    ) -> None:
        if self.working_dir and not os.path.isabs(path):
            path = os.path.join(self.working_dir, path)

        if path in response_files:
            raise ResponseFileRecursionError(
                f"response file {path} includes itself: {' -> '.join(response_files)}"
            )
        if len(response_files) >= self.max_response_file_depth:
            raise ResponseFileRecursionError(
                f"response files nested deeper than {self.max_response_file_depth}"
                f" at {path}"
            )

        logging.debug(f"Expanding response file {path}")
        contents = self.file_reader(path)
        sub = self.parse_args(
            contents, directory_options, response_files + (path,)
        )

        result.defines.extend(sub.defines)
        result.includes.extend(sub.includes)
        # the options of a response file end up in the trash as well
        result.options.extend(sub.options)
        result.trash.extend(sub.options)


def apply_directory_option(
    keyword: str, path: str, result: Result, directory_options: DirectoryOptions
) -> None:
    match keyword:
        case "withprefix" | "withprefixbefore":
            # requires a -iprefix given before
            prefixes = directory_options.get("prefix")
            if not prefixes or not prefixes[0]:
                return
            result.includes.append(f"{prefixes[0]}{path}")
        case _:
            directory_options.setdefault(keyword, []).append(path)
