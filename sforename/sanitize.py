from __future__ import annotations


UNSAFE_CHARS = "\x00\r\n\\\"/:*?<>|"

_DELETE_UNSAFE = str.maketrans("", "", UNSAFE_CHARS)


def safe_string(s: str) -> str:
    """Strip characters that are unsafe in file names.

    Removes NUL, CR, LF, backslash, double quote, slash, colon, asterisk,
    question mark, angle brackets and pipe. Everything else is kept as is.
    """
    return s.translate(_DELETE_UNSAFE)
