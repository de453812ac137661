from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CppStandard(Enum):
    """The C++ standard of a compiler invocation.

    The values are the strings the IDE expects in its configuration.
    """

    NONE = ""
    CPP98 = "c++98"
    CPP11 = "c++11"
    CPP14 = "c++14"
    CPP17 = "c++17"
    CPP20 = "c++20"


@dataclass(kw_only=True)
class Result:
    """What a parsing engine extracted from a compiler command line.

    Attributes:
        compiler (str):
            the compiler executable, empty if none was found
        includes (list[str]):
            include directories (without -I) in discovery order
        defines (list[str]):
            macro definitions (without -D) in discovery order
        options (list[str]):
            the remaining flags, e.g. "-std=gnu++17" or "-Wall"
        trash (list[str]):
            everything which was filtered out: "-c", "-o", output and
            source files, ...
        cpp_standard (CppStandard):
            the C++ standard found in options
    """

    compiler: str = ""
    includes: list[str] = field(default_factory=list)
    defines: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)
    trash: list[str] = field(default_factory=list)
    cpp_standard: CppStandard = CppStandard.NONE

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "compiler": self.compiler,
            "includes": list(self.includes),
            "defines": list(self.defines),
            "options": list(self.options),
            "trash": list(self.trash),
            "cppStandard": self.cpp_standard.value,
        }

    @staticmethod
    def from_json_dict(j: dict[str, Any]) -> Result:
        return Result(
            compiler=j["compiler"],
            includes=list(j["includes"]),
            defines=list(j["defines"]),
            options=list(j["options"]),
            trash=list(j["trash"]),
            cpp_standard=CppStandard(j["cppStandard"]),
        )
