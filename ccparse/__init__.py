from ccparse import (
    builtin_info,
    database,
    dispatcher,
    engine,
    gcc,
    properties,
    result,
    tokenizer,
    trigger,
    utils,
)

__all__ = [
    "builtin_info",
    "database",
    "dispatcher",
    "engine",
    "gcc",
    "properties",
    "result",
    "tokenizer",
    "trigger",
    "utils",
]
