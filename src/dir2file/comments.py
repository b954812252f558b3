"""Comment removal per language, keyed by file extension.

Every stripper keeps the newline count of its input so that line numbers in
the export still match the original file.
"""

from __future__ import annotations

import io
import tokenize
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    StripperFn = Callable[[str], str]

COMMENT_STRIPPERS: dict[str, Callable[[str], str]] = {}


def register_comment_stripper(key: str | list[str]) -> Callable[[StripperFn], StripperFn]:
    """Decorator to register a comment stripper for one or more file extensions.

    Args:
        key (str | list[str]): extension(s) without the leading dot, e.g. ``"js"``

    Returns:
        Callable[[StripperFn], StripperFn]: A decorator that registers the given function
        in the COMMENT_STRIPPERS mapping under the specified key(s) and returns it unchanged.
    """

    def decorator(func: StripperFn) -> StripperFn:
        keys = key if isinstance(key, list) else [key]
        for k in keys:
            COMMENT_STRIPPERS[k.lower()] = func
        return func

    return decorator


def is_supported(extension: str) -> bool:
    return extension.lower() in COMMENT_STRIPPERS


def strip_comments(source: str, extension: str) -> str:
    """Remove comments from ``source`` when a stripper exists for ``extension``.

    Args:
        source (str): file content
        extension (str): file extension without the leading dot

    Returns:
        str: the content without comments, or ``source`` unchanged for unsupported extensions
    """
    stripper = COMMENT_STRIPPERS.get(extension.lower())
    if stripper is None:
        return source
    return stripper(source)


def _trim_line_ends(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.split("\n"))


def _scan(
    source: str,
    *,
    line_markers: Sequence[str] = (),
    block: tuple[str, str] | None = None,
    quotes: str = "\"'",
    marker_needs_space: bool = False,
) -> str:
    out: list[str] = []
    i = 0
    n = len(source)
    quote = ""
    while i < n:
        ch = source[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(source[i + 1])
                i += 2
                continue
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = ""
            i += 1
            continue

        if block is not None and source.startswith(block[0], i):
            end = source.find(block[1], i + len(block[0]))
            stop = n if end == -1 else end + len(block[1])
            out.append("\n" * source.count("\n", i, stop))
            i = stop
            continue

        marker = next((m for m in line_markers if source.startswith(m, i)), None)
        if marker is not None and (not marker_needs_space or i == 0 or source[i - 1] in " \t\n"):
            end = source.find("\n", i)
            i = n if end == -1 else end
            continue

        if ch in quotes:
            quote = ch
        out.append(ch)
        i += 1
    return _trim_line_ends("".join(out))


@register_comment_stripper(["js", "jsx", "ts", "tsx", "java", "c", "cpp", "cs", "go", "rs", "swift", "kt"])
def strip_c_style(source: str) -> str:
    """Strip ``//`` line comments and ``/* */`` block comments."""
    return _scan(source, line_markers=("//",), block=("/*", "*/"), quotes="\"'`")


@register_comment_stripper("php")
def strip_php(source: str) -> str:
    return _scan(source, line_markers=("//", "#"), block=("/*", "*/"))


@register_comment_stripper("css")
def strip_css(source: str) -> str:
    return _scan(source, block=("/*", "*/"))


@register_comment_stripper(["less", "scss"])
def strip_css_preprocessor(source: str) -> str:
    return _scan(source, line_markers=("//",), block=("/*", "*/"))


@register_comment_stripper(["html", "xml", "svg"])
def strip_markup(source: str) -> str:
    """Strip ``<!-- -->`` comments."""
    return _scan(source, block=("<!--", "-->"), quotes="")


@register_comment_stripper(["yaml", "yml"])
def strip_yaml(source: str) -> str:
    """Strip ``#`` comments that start a line or follow whitespace."""
    return _scan(source, line_markers=("#",), marker_needs_space=True)


@register_comment_stripper("rb")
def strip_ruby(source: str) -> str:
    return _scan(source, line_markers=("#",))


@register_comment_stripper("py")
def strip_python(source: str) -> str:
    """Strip ``#`` comments using the tokenizer, so strings are never touched.

    Source that does not tokenize is returned unchanged.

    Args:
        source (str): Python source

    Returns:
        str: the source without comments
    """
    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(source).readline))
    except (tokenize.TokenError, SyntaxError):
        return source

    lines = source.split("\n")
    for tok in reversed(tokens):
        if tok.type != tokenize.COMMENT:
            continue
        (row, col), (_, end_col) = tok.start, tok.end
        line = lines[row - 1]
        lines[row - 1] = (line[:col] + line[end_col:]).rstrip()
    return "\n".join(lines)
