"""Logic for blanking out comments (and optionally string bodies) in JS/TS source."""

STRING_MASK = "\x01"
QUOTES = "'\"`"


def _blank(out: list[str], start: int, end: int, fill: str = " ") -> None:
    # Newlines survive so line/column positions stay stable
    for k in range(start, end):
        if out[k] != "\n":
            out[k] = fill


def _string_end(text: str, start: int) -> tuple[int, bool]:
    """Return (index after the literal, whether it was terminated)."""
    quote = text[start]
    k = start + 1
    n = len(text)
    while k < n:
        ch = text[k]
        if ch == "\\":
            k += 2
            continue
        if ch == quote:
            return k + 1, True
        if ch == "\n" and quote != "`":
            return k, False
        k += 1
    return n, False


def mask_source(text: str, *, mask_strings: bool = True) -> str:
    """Return a copy of 'text' with the same length and line structure.

    Comments become spaces. With 'mask_strings', the bodies of string and
    template literals become STRING_MASK characters while the quotes stay in
    place, so keyword searches cannot match inside literals but every offset
    still lines up with the original text.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if c == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(out, i, end)
            i = end
        elif c == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(out, i, end)
            i = end
        elif c in QUOTES:
            end, closed = _string_end(text, i)
            if mask_strings:
                _blank(out, i + 1, end - 1 if closed else end, STRING_MASK)
            i = end
        else:
            i += 1
    return "".join(out)
