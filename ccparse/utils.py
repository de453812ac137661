from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Union


class ParseError(Exception):
    """Base class of the errors that abort an engine's attempt on a line."""


class FileReadError(ParseError):
    """Exception raised when a file referenced by a command line can't be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"could not read {path}: {reason}")
        self.path = path
        self.reason = reason


FileReader = Callable[[str], str]


def read_text_file(path: str) -> str:
    """Reads a (response) file as text.

    Args:
        path (str): the file to read

    Returns:
        str:
            the file's contents

    Raises:
        FileReadError: the file is missing, unreadable or not valid utf-8
    """
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(path, str(e)) from e


@dataclass(frozen=True, kw_only=True)
class CommandOutput:
    stdout: str
    stderr: str


def run_cmd(
    cmd: Union[str, list[str]],
    working_dir: Path | None = None,
    additional_env: dict[str, str] = {},
    **kwargs: Any,  # https://github.com/python/mypy/issues/8772
) -> CommandOutput:
    if working_dir is None:
        working_dir = Path(os.getcwd())
    env = os.environ.copy()
    env.update(additional_env)

    if isinstance(cmd, str):
        cmd = shlex.split(cmd)
    output = subprocess.run(
        cmd,
        cwd=str(working_dir),
        check=True,
        env=env,
        capture_output=True,
        **kwargs,
    )

    return CommandOutput(
        stdout=output.stdout.decode("utf-8", errors="replace").strip(),
        stderr=output.stderr.decode("utf-8", errors="replace").strip(),
    )
