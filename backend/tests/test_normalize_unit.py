import pytest

from stepwise.math.normalize import normalize


@pytest.mark.parametrize(
    "raw",
    [
        "\\(x^2+y^2=r^2\\)",
        "  \\(x^2+y^2=r^2\\)  ",
        "$x^2+y^2=r^2$",
        "\n$ x^2+y^2=r^2 $\t",
        "x^2+y^2=r^2",
    ],
)
def test_strips_delimiters_and_whitespace(raw) -> None:
    assert normalize(raw) == "x^2+y^2=r^2"


def test_only_one_side_wrapped() -> None:
    assert normalize("$x = 5") == "x = 5"
    assert normalize("x = 5\\)") == "x = 5"


def test_plain_parentheses_survive() -> None:
    assert normalize("(a+b)^2") == "(a+b)^2"
    assert normalize("\\((a+b)^2\\)") == "(a+b)^2"


def test_empty_and_none() -> None:
    assert normalize("") == ""
    assert normalize("   ") == ""
    assert normalize(None) == ""
    assert normalize("$$") == ""


@pytest.mark.parametrize(
    "raw",
    ["$$x=1$$", "\\(\\(x\\)\\)", " $ \\( y \\) $ ", "x", "\\frac{a}{b}", "$", "\\(", "a$b"],
)
def test_idempotent(raw) -> None:
    once = normalize(raw)
    assert normalize(once) == once


def test_inner_dollars_untouched() -> None:
    assert normalize("a$b") == "a$b"


def test_nested_wrapping_is_fully_peeled() -> None:
    assert normalize("\\(\\(x\\)\\)") == "x"
    assert normalize("$$x$$") == "x"
    assert normalize("$\\(x^2\\)$") == "x^2"
