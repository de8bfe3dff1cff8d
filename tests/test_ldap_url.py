import pytest

from smtptables.ldap_url import LDAP_PORT, LdapUrl, Scope, parse_url


def test_host_only_uses_default_port():
    url = parse_url("ldap://ldap.example.com")
    assert url == LdapUrl("ldap.example.com", LDAP_PORT)
    assert url.port == 389


def test_prefix_is_case_insensitive():
    assert parse_url("LDAP://ldap.example.com").host == "ldap.example.com"


def test_full_url():
    url = parse_url("ldap://ldap.example.com:1234/dc=example,dc=com?cn,mail?sub?(uid=%s)")
    assert url.host == "ldap.example.com"
    assert url.port == 1234
    assert url.dn == "dc=example,dc=com"
    assert url.attributes == ("cn", "mail")
    assert url.scope is Scope.SUBTREE
    assert url.filter == "(uid=%s)"


@pytest.mark.parametrize("text, scope", [("base", Scope.BASE), ("one", Scope.ONELEVEL), ("sub", Scope.SUBTREE)])
def test_scopes(text, scope):
    assert parse_url(f"ldap://h/dn?a?{text}").scope is scope


def test_trailing_slash_has_no_dn():
    url = parse_url("ldap://h/")
    assert url.dn is None
    assert url.attributes == ()


def test_dn_without_attributes():
    url = parse_url("ldap://h/dc=example?")
    assert url.dn == "dc=example"
    assert url.attributes == ()


def test_empty_attribute_in_middle_is_kept():
    assert parse_url("ldap://h/dn?a,,b").attributes == ("a", "", "b")


def test_trailing_comma_is_dropped():
    assert parse_url("ldap://h/dn?a,").attributes == ("a",)


def test_filter_keeps_question_marks():
    assert parse_url("ldap://h/dn?a?one?(x=?)?y").filter == "(x=?)?y"


def test_empty_port_keeps_default():
    assert parse_url("ldap://h:/dn").port == LDAP_PORT


@pytest.mark.parametrize(
    "url",
    [
        "http://h",
        "ldap://",
        "ldap://:389",
        "ldap://h:99999",
        "ldap://h:abc",
        "ldap://h:-1",
        "ldap://h/dn?a?bogus",
        "ldap://h/dn?a?SUB",
    ],
)
def test_invalid_urls(url):
    with pytest.raises(ValueError):
        parse_url(url)