import re

# Models are told not to wrap their answer, but often do anyway.
_LEADING_DELIMITER = re.compile(r"^(?:\\\(|\$)")
_TRAILING_DELIMITER = re.compile(r"(?:\\\)|\$)$")


def _strip_once(text: str) -> str:
    t = _LEADING_DELIMITER.sub("", text.strip(), count=1)
    t = _TRAILING_DELIMITER.sub("", t, count=1)
    return t.strip()


def normalize(raw: str) -> str:
    """
    Strip math delimiters from model output.

    Removes one leading ``\\(`` or ``$`` and one trailing ``\\)`` or ``$``,
    trimming whitespace before and after. Text without delimiters is
    returned trimmed.

    Nested wrapping such as ``$$x$$`` is peeled until nothing changes, so
    ``normalize(normalize(s)) == normalize(s)`` for every input.
    """
    if not raw:
        return ""
    t = _strip_once(raw)
    while True:
        stripped = _strip_once(t)
        if stripped == t:
            return t
        t = stripped
