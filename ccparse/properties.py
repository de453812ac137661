""" The IDE's c_cpp_properties.json and merging parse results into it.

See https://code.visualstudio.com/docs/cpp/c-cpp-properties-schema-reference

Example:

props = PropertiesFile.read(path) or PropertiesFile()
if props.merge(Configuration.from_result(result, "Arduino"), MergeMode.REPLACE):
    props.write(path)
"""
from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from ccparse.result import Result


class MergeMode(Enum):
    """How a new configuration is combined with a stored one of the same name.

    REPLACE:
        the new configuration replaces the stored one
    ADD_UNIQUE:
        lists become the sorted union of the stored and new entries
    ADD_KEEP_ORDER:
        lists keep their stored order, new entries are appended in the order
        they were found
    """

    REPLACE = "replace"
    ADD_UNIQUE = "add-unique"
    ADD_KEEP_ORDER = "add-keep-order"


# attribute name -> field name in c_cpp_properties.json
JSON_NAMES = {
    "name": "name",
    "compiler_path": "compilerPath",
    "compiler_args": "compilerArgs",
    "intellisense_mode": "intelliSenseMode",
    "include_path": "includePath",
    "forced_include": "forcedInclude",
    "c_standard": "cStandard",
    "cpp_standard": "cppStandard",
    "defines": "defines",
}


@dataclass(kw_only=True)
class Configuration:
    """One entry of "configurations" in c_cpp_properties.json.

    Empty strings and lists mean "not set".
    """

    name: str = ""
    compiler_path: str = ""
    compiler_args: list[str] = field(default_factory=list)
    intellisense_mode: str = ""
    include_path: list[str] = field(default_factory=list)
    forced_include: list[str] = field(default_factory=list)
    c_standard: str = ""
    cpp_standard: str = ""
    defines: list[str] = field(default_factory=list)

    @staticmethod
    def from_result(result: Result, name: str) -> Configuration:
        return Configuration(
            name=name,
            compiler_path=result.compiler,
            compiler_args=list(result.options),
            include_path=list(result.includes),
            defines=list(result.defines),
            cpp_standard=result.cpp_standard.value,
        )

    def to_json_dict(self) -> dict[str, Any]:
        return {
            json_name: getattr(self, attr) for attr, json_name in JSON_NAMES.items()
        }

    @staticmethod
    def from_json_dict(j: dict[str, Any]) -> Configuration:
        c = Configuration()
        for attr, json_name in JSON_NAMES.items():
            value = j.get(json_name)
            if not value:
                continue
            if isinstance(getattr(c, attr), list):
                setattr(c, attr, list(value))
            else:
                setattr(c, attr, str(value))
        return c

    def merged(self, other: Configuration, mode: MergeMode) -> Configuration:
        """Returns the combination of this (stored) and another (new)
        configuration."""
        if mode == MergeMode.REPLACE:
            return deepcopy(other)

        changes: dict[str, Any] = {}
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if isinstance(mine, list):
                changes[f.name] = merge_lists(mine, theirs, mode)
            else:
                changes[f.name] = theirs if theirs else mine
        return Configuration(**changes)


def merge_lists(stored: list[str], new: list[str], mode: MergeMode) -> list[str]:
    match mode:
        case MergeMode.REPLACE:
            return list(new)
        case MergeMode.ADD_UNIQUE:
            return sorted(set(stored) | set(new))
        case MergeMode.ADD_KEEP_ORDER:
            merged = list(dict.fromkeys(stored))
            seen = set(merged)
            for entry in new:
                if entry not in seen:
                    merged.append(entry)
                    seen.add(entry)
            return merged


@dataclass(kw_only=True)
class PropertiesFile:
    configurations: list[Configuration] = field(default_factory=list)
    version: int = 4

    def find(self, name: str) -> Configuration | None:
        for c in self.configurations:
            if c.name == name:
                return c
        return None

    def merge(self, configuration: Configuration, mode: MergeMode) -> bool:
        """Merges `configuration` into the configuration with the same name or
        appends it if there is none.

        Returns:
            bool:
                whether anything changed
        """
        for i, stored in enumerate(self.configurations):
            if stored.name != configuration.name:
                continue
            merged = stored.merged(configuration, mode)
            if merged == stored:
                return False
            self.configurations[i] = merged
            return True

        self.configurations.append(deepcopy(configuration))
        return True

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "configurations": [c.to_json_dict() for c in self.configurations],
            "version": self.version,
        }

    @staticmethod
    def from_json_dict(j: dict[str, Any]) -> PropertiesFile:
        return PropertiesFile(
            configurations=[
                Configuration.from_json_dict(c) for c in j.get("configurations", [])
            ],
            version=j.get("version", 4),
        )

    @staticmethod
    def read(path: Path) -> PropertiesFile | None:
        """Loads a properties file.

        Returns:
            PropertiesFile | None:
                the properties or None if there is no file at `path`

        Raises:
            ValueError: the file is not valid JSON or not a JSON object
        """
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            j = json.load(f)
        if not isinstance(j, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return PropertiesFile.from_json_dict(j)

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_json_dict(), f, indent=4)
            f.write("\n")
        logging.info(f"Wrote {path}")
