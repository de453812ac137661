from __future__ import annotations

import shlex


def tokenize(line: str) -> list[str]:
    """Splits a command line into arguments like a POSIX shell would.

    Quotes are removed and empty arguments dropped. Broken quoting does not
    raise: the arguments before the unterminated quote are kept and the
    rest of the line is returned as a single argument.

    Args:
        line (str): the command line

    Returns:
        list[str]:
            the arguments
    """
    lexer = shlex.shlex(line, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""

    args: list[str] = []
    while True:
        # shlex doesn't push characters back in whitespace_split mode, so the
        # stream position is where the next argument (or its padding) begins
        start = lexer.instream.tell()
        try:
            arg = lexer.get_token()
        except ValueError:
            rest = line[start:].strip()
            if rest:
                args.append(rest)
            break
        if arg is None or arg == lexer.eof:
            break
        if arg:
            args.append(arg)
    return args
