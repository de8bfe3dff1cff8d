import pytest

from smtptables.ber import BerClass, BerType
from smtptables.ber_codec import encode
from smtptables.ldap_filter import FilterSyntaxError, parse_filter


def test_equality_wire_bytes():
    assert encode(parse_filter("(cn=foo)")) == bytes.fromhex("a309 0402 636e 0403 666f6f")


def test_presence_wire_bytes():
    assert encode(parse_filter("(objectClass=*)")) == bytes([0x87, 11]) + b"objectClass"


def test_equality_structure():
    element = parse_filter("(uid=joe)")
    assert element.ber_class == BerClass.CONTEXT
    assert element.tag == 3
    assert [c.as_bytes() for c in element.children] == [b"uid", b"joe"]


@pytest.mark.parametrize(
    "text, tag",
    [("(cn~=x)", 8), ("(cn<=x)", 6), ("(cn>=x)", 5), ("(cn=x)", 3)],
)
def test_comparison_tags(text, tag):
    element = parse_filter(text)
    assert element.tag == tag
    assert element.children[1].as_bytes() == b"x"


def test_presence_is_primitive_string():
    element = parse_filter("(mail=*)")
    assert element.tag == 7
    assert element.as_bytes() == b"mail"


def test_and_filter_is_set_of_children():
    element = parse_filter("(&(a=1)(b=2))")
    assert element.encoding == BerType.SET
    assert element.tag == 0
    assert [c.children[0].as_bytes() for c in element.children] == [b"a", b"b"]


def test_or_filter():
    element = parse_filter("(|(a=1)(b=2)(c=3))")
    assert element.tag == 1
    assert len(element.children) == 3


def test_not_filter():
    element = parse_filter("(!(a=b))")
    assert element.tag == 2
    assert len(element.children) == 1
    assert element.children[0].children[1].as_bytes() == b"b"


def test_substring_parts():
    element = parse_filter("(cn=a*b*c)")
    assert element.tag == 4
    desc, parts = element.children
    assert desc.as_bytes() == b"cn"
    assert [p.tag for p in parts.children] == [0, 1, 2]
    assert [p.as_bytes() for p in parts.children] == [b"a", b"b", b"c"]


def test_substring_final_only():
    parts = parse_filter("(cn=*end)").children[1].children
    assert [(p.tag, p.as_bytes()) for p in parts] == [(2, b"end")]


def test_substring_initial_only():
    parts = parse_filter("(cn=start*)").children[1].children
    assert [(p.tag, p.as_bytes()) for p in parts] == [(0, b"start")]


def test_escaped_value_is_decoded():
    element = parse_filter("(cn=\\2a)")
    assert element.tag == 3
    assert element.children[1].as_bytes() == b"*"


def test_nested_filter():
    element = parse_filter("(&(objectClass=person)(|(uid=joe)(mail=joe*)))")
    inner = element.children[1]
    assert inner.tag == 1
    assert inner.children[1].tag == 4


@pytest.mark.parametrize(
    "text",
    ["", "cn=foo", "(cn=foo", "(cn=foo))", "(&)", "(cn)", "(=)", "(a~", "(!x)", "(cn=)"],
)
def test_syntax_errors(text):
    with pytest.raises(FilterSyntaxError):
        parse_filter(text)