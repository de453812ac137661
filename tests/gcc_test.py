import re
from collections import Counter
from pathlib import Path
from typing import Any

import pytest

from ccparse.gcc import (
    AFTER_RESPONSE_FILE,
    ArgumentKind,
    GccEngine,
    classify,
    join_directory_options,
    parse_cpp_standard,
    unquote,
)
from ccparse.result import CppStandard, Result
from ccparse.tokenizer import tokenize
from ccparse.trigger import Trigger


def real_world_compiler_invocations() -> list[str]:
    path = Path(__file__).parent / Path("compilation_command_parsing_inputs.txt")
    with open(path, "r") as f:
        return [line for line in f.readlines() if line.strip()]


def make_engine(**kwargs: Any) -> GccEngine:
    engine = GccEngine(
        Trigger([re.compile(r"(?:^|-)g\+\+\s+"), re.compile(r"\s+-c\s+")]),
        **kwargs,
    )
    assert engine.info_source
    engine.info_source.enabled = False
    return engine


@pytest.mark.parametrize(
    "arg,kind,value",
    [
        ("-DFOO=1", ArgumentKind.DEFINE, "FOO=1"),
        ("-DARDUINO_AVR_UNO", ArgumentKind.DEFINE, "ARDUINO_AVR_UNO"),
        ("-Iinc", ArgumentKind.INCLUDE, "inc"),
        ("-I/opt/sdk/include", ArgumentKind.INCLUDE, "/opt/sdk/include"),
        ("g++", ArgumentKind.COMPILER, "g++"),
        ("arm-none-eabi-g++", ArgumentKind.COMPILER, "arm-none-eabi-g++"),
        ("/usr/bin/g++", ArgumentKind.COMPILER, "/usr/bin/g++"),
        ("C:\\avr\\bin\\avr-g++.exe", ArgumentKind.COMPILER, "C:\\avr\\bin\\avr-g++.exe"),
        ("-iprefix/a/", ArgumentKind.DIRECTORY_OPTION, "/a/"),
        ("-isystem /usr/include", ArgumentKind.DIRECTORY_OPTION, "/usr/include"),
        ("-iwithprefixbefore/x", ArgumentKind.DIRECTORY_OPTION, "/x"),
        ("-isystem /opt/avr-g++", ArgumentKind.DIRECTORY_OPTION, "/opt/avr-g++"),
        ("-iprefix/opt/avr-g++", ArgumentKind.DIRECTORY_OPTION, "/opt/avr-g++"),
        ("@args.txt", ArgumentKind.RESPONSE_FILE, "args.txt"),
        ("@ args.txt", ArgumentKind.RESPONSE_FILE, "args.txt"),
        ("@tools/g++", ArgumentKind.RESPONSE_FILE, "tools/g++"),
        ("-o", ArgumentKind.TRASH, "-o"),
        ("-Os", ArgumentKind.TRASH, "-Os"),
        ("-O2", ArgumentKind.TRASH, "-O2"),
        ("-g3", ArgumentKind.TRASH, "-g3"),
        ("-c", ArgumentKind.TRASH, "-c"),
        ("main.cpp", ArgumentKind.TRASH, "main.cpp"),
        ("main.cpp.o", ArgumentKind.TRASH, "main.cpp.o"),
        ("-Wall", ArgumentKind.OPTION, "-Wall"),
        ("-std=gnu++17", ArgumentKind.OPTION, "-std=gnu++17"),
        ("-include", ArgumentKind.OPTION, "-include"),
        ("-isystem", ArgumentKind.OPTION, "-isystem"),
        ("main.c", ArgumentKind.RESIDUAL, "main.c"),
        ("/usr/bin/c++", ArgumentKind.RESIDUAL, "/usr/bin/c++"),
    ],
)
def test_classify(arg: str, kind: ArgumentKind, value: str) -> None:
    c = classify(arg)
    assert c.kind == kind
    assert c.value == value
    assert c.arg == arg


def test_classify_directory_option_keyword() -> None:
    assert classify("-iwithprefix b/").keyword == "withprefix"
    assert classify("-iwithprefixbefore b/").keyword == "withprefixbefore"
    assert classify("-idirafter/late").keyword == "dirafter"
    assert classify("-DFOO").keyword is None


def test_classify_after_response_file() -> None:
    assert classify("@args.txt", AFTER_RESPONSE_FILE).kind == ArgumentKind.RESIDUAL
    assert classify("@build.cpp", AFTER_RESPONSE_FILE).kind == ArgumentKind.TRASH


def test_unquote() -> None:
    assert unquote('"-DFOO=\\"bar\\""') == '-DFOO="bar"'
    assert unquote('"-Ipath with space"') == "-Ipath with space"
    assert unquote('-DFOO="bar"') == '-DFOO="bar"'
    assert unquote('"') == '"'
    assert unquote('""') == '""'


def test_join_directory_options() -> None:
    assert join_directory_options(["-isystem", "/a", "-Ib", "-iquote", "q"]) == [
        "-isystem /a",
        "-Ib",
        "-iquote q",
    ]
    assert join_directory_options(["-iprefix/a/", "-isystem"]) == [
        "-iprefix/a/",
        "-isystem",
    ]


def test_concrete_scenario() -> None:
    engine = make_engine()
    engine.match("g++ -DFOO=1 -Iinc -c main.cpp -o main.cpp.o -std=c++17")

    result = engine.result
    assert result is not None
    assert result.compiler == "g++"
    assert result.defines == ["FOO=1"]
    assert result.includes == ["inc"]
    assert result.options == ["-std=c++17"]
    assert result.trash == ["-c", "main.cpp", "-o", "main.cpp.o"]
    assert result.cpp_standard == CppStandard.CPP17


def test_quoted_defines() -> None:
    engine = make_engine()
    result = engine.parse(
        'xtensa-esp32-elf-g++ "-DMBEDTLS_CONFIG_FILE=\\"mbedtls/esp_config.h\\"" '
        '\'"-DARDUINO_BOARD=\\"ESP32_DEV\\""\' -c main.cpp'
    )
    assert result.defines == [
        'MBEDTLS_CONFIG_FILE="mbedtls/esp_config.h"',
        'ARDUINO_BOARD="ESP32_DEV"',
    ]


def test_first_compiler_wins() -> None:
    engine = make_engine()
    result = engine.parse("g++ -c main.cpp arm-none-eabi-g++")
    assert result.compiler == "g++"
    assert "arm-none-eabi-g++" not in result.trash
    assert "arm-none-eabi-g++" not in result.options


@pytest.mark.parametrize(
    "options,standard",
    [
        (["-std=c++98"], CppStandard.CPP98),
        (["-std=gnu++11"], CppStandard.CPP11),
        (["-Wall", "-std=c++14"], CppStandard.CPP14),
        (["-std=c++17"], CppStandard.CPP17),
        (["-std=gnu++20"], CppStandard.CPP20),
        (["-std=c++23", "-std=gnu++17"], CppStandard.CPP17),
        (["-std=c++11", "-std=c++20"], CppStandard.CPP11),
        (["-std=c11"], CppStandard.NONE),
        (["-std=c++2a"], CppStandard.NONE),
        ([], CppStandard.NONE),
    ],
)
def test_parse_cpp_standard(options: list[str], standard: CppStandard) -> None:
    result = Result(options=options)
    parse_cpp_standard(result)
    assert result.cpp_standard == standard


def test_prefix_before_withprefix() -> None:
    engine = make_engine()
    result = engine.parse("g++ -iprefix /a/ -iwithprefix b/ -c main.cpp")
    assert result.includes == ["/a/b/"]
    assert engine.directory_options == {"prefix": ["/a/"]}


def test_withprefix_before_prefix() -> None:
    engine = make_engine()
    result = engine.parse("g++ -iwithprefix b/ -iprefix /a/ -c main.cpp")
    assert result.includes == []
    assert engine.directory_options == {"prefix": ["/a/"]}


def test_withprefixbefore_uses_first_prefix() -> None:
    engine = make_engine()
    result = engine.parse(
        "g++ -iprefix/first/ -iprefix/second/ -iwithprefixbefore inc -c main.cpp"
    )
    assert result.includes == ["/first/inc"]
    assert engine.directory_options["prefix"] == ["/first/", "/second/"]


def test_empty_prefix_is_ignored() -> None:
    engine = make_engine(directory_options={"prefix": [""]})
    result = engine.parse("g++ -iwithprefix inc -c main.cpp")
    assert result.includes == []


def test_directory_options_recorded() -> None:
    engine = make_engine()
    engine.parse(
        "g++ -isystem /usr/include -isystem/opt/include -iquote q "
        "-idirafter /late -isysroot /sysroot -c main.cpp"
    )
    assert engine.directory_options == {
        "system": ["/usr/include", "/opt/include"],
        "quote": ["q"],
        "dirafter": ["/late"],
        "sysroot": ["/sysroot"],
    }


def test_directory_options_persist_across_lines_and_reset() -> None:
    engine = make_engine()
    engine.match("g++ -iprefix/sdk/ -c first.cpp -o first.cpp.o")
    assert engine.result is not None
    assert engine.result.includes == []

    engine.reset()
    engine.match("g++ -iwithprefix include -c second.cpp -o second.cpp.o")
    assert engine.result is not None
    assert engine.result.includes == ["/sdk/include"]


def test_seeded_directory_options_are_copied() -> None:
    seed = {"prefix": ["/p/"]}
    engine = make_engine(directory_options=seed)
    result = engine.parse("g++ -iwithprefixbefore inc -iprefix /q/ -c main.cpp")
    assert result.includes == ["/p/inc"]
    assert engine.directory_options == {"prefix": ["/p/", "/q/"]}
    assert seed == {"prefix": ["/p/"]}


@pytest.mark.parametrize("line", real_world_compiler_invocations())
def test_every_argument_lands_in_one_bucket(line: str) -> None:
    engine = make_engine()
    result = engine.parse(line)

    args = [unquote(arg) for arg in tokenize(line)]
    buckets = (
        ([result.compiler] if result.compiler else [])
        + [f"-D{d}" for d in result.defines]
        + [f"-I{i}" for i in result.includes]
        + result.options
        + result.trash
    )
    assert Counter(args) == Counter(buckets), line

    for define in result.defines:
        assert not define.startswith("-D"), define
    for include in result.includes:
        assert not include.startswith("-I"), include
    for option in result.options:
        assert option.startswith("-"), option
        assert not option.startswith("-O"), option
        assert option != "-c"


def test_real_world_invocations() -> None:
    engine = make_engine()
    result = engine.parse(real_world_compiler_invocations()[1])

    assert result.compiler.endswith("/bin/xtensa-esp32-elf-g++")
    assert result.defines == [
        "ESP_PLATFORM",
        'MBEDTLS_CONFIG_FILE="mbedtls/esp_config.h"',
        "HAVE_CONFIG_H",
        "F_CPU=240000000L",
        'ARDUINO_BOARD="ESP32_DEV"',
    ]
    assert result.includes == [
        "/home/user/.arduino15/packages/esp32/hardware/esp32/2.0.3/cores/esp32"
    ]
    assert result.options == ["-std=gnu++11"]
    assert result.cpp_standard == CppStandard.CPP11

    result = engine.parse(real_world_compiler_invocations()[5])
    assert result.compiler == "/usr/bin/g++"
    assert result.defines == ['GREETING="hello world"']
    assert result.includes == ["/opt/my project/include"]
    assert result.cpp_standard == CppStandard.CPP20


def test_default_trigger() -> None:
    trigger = GccEngine.default_trigger()
    for line in real_world_compiler_invocations():
        if "g++" in line.split()[0]:
            assert trigger.matches(line), line
    assert not trigger.matches("/usr/bin/c++ -c main.cpp -o main.o")
    assert not trigger.matches("avr-g++ -c -o /dev/null main.cpp")
    assert not trigger.matches("avr-g++ -o firmware.elf main.o")
    assert trigger.matches('"C:\\tools\\avr-g++.exe" -c main.cpp')

    sketch = GccEngine.default_trigger("Blink.ino")
    lines = real_world_compiler_invocations()
    assert sketch.matches(lines[0])
    assert not sketch.matches(lines[1])


def test_directory_option_path_ending_in_compiler_name() -> None:
    engine = make_engine()
    result = engine.parse("-isystem /opt/avr-g++ g++ -c main.cpp")
    assert result.compiler == "g++"
    assert engine.directory_options == {"system": ["/opt/avr-g++"]}

    engine = make_engine()
    result = engine.parse(
        "g++ -iprefix /opt/avr-g++ -iwithprefix /include -isystem /usr/x86_64-g++ "
        "-c main.cpp"
    )
    assert result.compiler == "g++"
    assert result.includes == ["/opt/avr-g++/include"]
    assert engine.directory_options == {
        "prefix": ["/opt/avr-g++"],
        "system": ["/usr/x86_64-g++"],
    }
