import pytest

from testnet_deployer.errors import DuplicateHostError, ParseError
from testnet_deployer.hosts import expand_range, resolve


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("", []),
        ("foo", ["foo"]),
        ("foo[1,2]", ["foo1", "foo2"]),
        ("foo[1,2]bar;baz", ["foo1bar", "foo2bar", "baz"]),
        ("foo[1,2,5-7]bar;baz", ["foo1bar", "foo2bar", "foo5bar", "foo6bar", "foo7bar", "baz"]),
        ("foo[0-2];foo[4-6]", ["foo0", "foo1", "foo2", "foo4", "foo5", "foo6"]),
        ("[a,b]", ["a", "b"]),
        ("mach[1-4]", ["mach1", "mach2", "mach3", "mach4"]),
    ],
)
def test_resolve_examples(expr, expected):
    assert resolve(expr) == expected


def test_resolve_keeps_literal_tokens_and_padding():
    assert resolve("n[01,x,3-4]") == ["n01", "nx", "n3", "n4"]


def test_resolve_duplicate_across_segments():
    with pytest.raises(DuplicateHostError) as exc:
        resolve("foo[1];foo[1]")
    assert exc.value.host == "foo1"


def test_resolve_duplicate_literal_and_range():
    with pytest.raises(DuplicateHostError):
        resolve("foo2;foo[1-3]")


def test_duplicate_is_a_parse_error():
    with pytest.raises(ParseError):
        resolve("a;a")


@pytest.mark.parametrize("expr", ["foo[5-2]", "foo[a-3]", "foo[1-x]", "foo[0-1001]", "foo[1_0-12]", "foo[1-1_2]", "foo[-1-3]"])
def test_resolve_bad_ranges(expr):
    with pytest.raises(ParseError):
        resolve(expr)


def test_range_span_limit_is_inclusive():
    assert len(expand_range("0-1000")) == 1001


@pytest.mark.parametrize("expr", ["foo[1", "foo]1", "foo[]", "foo[1][2]", "foo[1 2]"])
def test_resolve_malformed_brackets(expr):
    with pytest.raises(ParseError):
        resolve(expr)


def test_resolve_output_has_no_duplicates():
    hosts = resolve("a[0-50];b[0-50];c")
    assert len(hosts) == len(set(hosts)) == 103
