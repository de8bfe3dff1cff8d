import socket

import pytest

from smtptables.aldap import (
    PAGED_RESULTS_OID,
    LdapClient,
    LdapError,
    LdapMessage,
    PageControl,
    ProtocolOp,
    ResultCode,
    build_page_control,
    parse_page_control,
)
from smtptables.ber import BerClass, BerElement
from smtptables.ber_codec import encode, read_element
from smtptables.ldap_filter import parse_filter
from smtptables.ldap_url import Scope


@pytest.fixture
def link():
    client_sock, server_sock = socket.socketpair()
    client_sock.settimeout(5)
    server_sock.settimeout(5)
    client = LdapClient(client_sock)
    reader = server_sock.makefile("rb")
    yield client, server_sock, reader
    client.close()
    reader.close()
    server_sock.close()


def _app(element, op):
    return element.with_header(BerClass.APPLICATION, op)


def _result(msgid, op, code, extra=(), controls=()):
    body = BerElement.sequence(
        [BerElement.enumerated(code), BerElement.string(""), BerElement.string(""), *extra]
    )
    return BerElement.sequence([BerElement.integer(msgid), _app(body, op), *controls])


def _entry(msgid, dn, attrs):
    attributes = [
        BerElement.sequence(
            [BerElement.string(name), BerElement.set([BerElement.string(v) for v in values])]
        )
        for name, values in attrs
    ]
    op = _app(
        BerElement.sequence([BerElement.string(dn), BerElement.sequence(attributes)]),
        ProtocolOp.SEARCH_ENTRY,
    )
    return BerElement.sequence([BerElement.integer(msgid), op])


def test_unbind_wire_bytes(link):
    client, _, reader = link
    assert client.unbind() == 1
    assert reader.read(7) == bytes([0x30, 0x05, 0x02, 0x01, 0x01, 0x62, 0x00])


def test_anonymous_bind_wire_bytes(link):
    client, _, reader = link
    assert client.bind(None, None) == 1
    assert reader.read(14) == bytes(
        [0x30, 0x0C, 0x02, 0x01, 0x01, 0x60, 0x07, 0x02, 0x01, 0x03, 0x04, 0x00, 0x80, 0x00]
    )


def test_bind_carries_dn_and_password(link):
    client, server, reader = link
    password = "password"
    dn = "cn=admin,dc=example,dc=com"
    assert client.bind(dn, password) == 1
    client.close()
    data = reader.read()
    assert dn.encode() in data
    assert data.endswith(b"\x80\x08password")


def test_search_request_structure(link):
    client, _, reader = link
    msgid = client.search(
        "dc=example,dc=com", Scope.SUBTREE, "(uid=joe)", ["mail"], 0, 0, 0, None
    )
    request = read_element(reader)
    assert request.children[0].as_integer() == msgid
    op = request.children[1]
    assert op.ber_class == BerClass.APPLICATION
    assert op.tag == ProtocolOp.SEARCH_REQUEST
    assert op.children[0].as_bytes() == b"dc=example,dc=com"
    assert op.children[1].as_enumerated() == Scope.SUBTREE
    assert op.children[2].as_enumerated() == 0
    assert op.children[5].as_boolean() is False
    assert op.children[6] == parse_filter("(uid=joe)")
    assert [a.as_bytes() for a in op.children[7].children] == [b"mail"]
    controls = request.children[2]
    assert controls.ber_class == BerClass.CONTEXT and controls.tag == 0
    assert parse_page_control(controls.children[0]) == PageControl(50, b"")


def test_message_ids_increase(link):
    client, _, _ = link
    assert client.bind("cn=a", "secret") == 1
    assert client.search("dc=example", Scope.BASE, "(cn=a)", None, 0, 0, 0, None) == 2


def test_bad_filter_raises(link):
    client, _, _ = link
    with pytest.raises(LdapError):
        client.search("dc=example", Scope.SUBTREE, "uid=joe", None, 0, 0, 0, None)


def test_read_bind_response(link):
    client, server, _ = link
    server.sendall(encode(_result(1, ProtocolOp.BIND_RESPONSE, ResultCode.SUCCESS)))
    message = client.read_message()
    assert message.msgid == 1
    assert message.message_type == ProtocolOp.BIND_RESPONSE
    assert message.result_code == ResultCode.SUCCESS
    assert message.dn == ""
    assert message.page is None


def test_read_search_entry_over_socket(link):
    client, server, _ = link
    mails = ["a@example.com", "b@example.com"]
    server.sendall(encode(_entry(2, "uid=joe,dc=example,dc=com", [("mail", mails)])))
    message = client.read_message()
    assert message.message_type == ProtocolOp.SEARCH_ENTRY
    assert message.dn == "uid=joe,dc=example,dc=com"
    assert message.match_attr("MAIL") == tuple(mails)


def test_attributes_and_match():
    message = LdapMessage.from_element(
        _entry(3, "uid=joe", [("mail", ["joe@example.com"]), ("cn", ["Joe", "J"])])
    )
    assert list(message.attributes()) == [
        ("mail", ("joe@example.com",)),
        ("cn", ("Joe", "J")),
    ]
    assert message.match_attr("Cn") == ("Joe", "J")
    assert message.match_attr("uid") is None


def test_search_entry_without_attributes_is_rejected():
    op = _app(BerElement.sequence([BerElement.string("uid=joe")]), ProtocolOp.SEARCH_ENTRY)
    with pytest.raises(LdapError):
        LdapMessage.from_element(BerElement.sequence([BerElement.integer(1), op]))


def test_search_result_with_page_control():
    controls = build_page_control(PageControl(7, b"cookie"))
    element = _result(
        4, ProtocolOp.SEARCH_RESULT, ResultCode.SUCCESS, controls=[controls]
    )
    message = LdapMessage.from_element(element)
    assert message.message_type == ProtocolOp.SEARCH_RESULT
    assert message.page == PageControl(50, b"cookie")


def test_page_control_round_trip():
    controls = build_page_control(PageControl(10, b"abc"))
    control = controls.children[0]
    assert control.children[0].as_bytes() == PAGED_RESULTS_OID.encode()
    assert parse_page_control(control) == PageControl(50, b"abc")


def test_malformed_page_control_is_none():
    assert parse_page_control(BerElement.string("x")) is None


def test_referral_references():
    referral = BerElement.sequence([BerElement.string("ldap://other.example.com/")])
    message = LdapMessage.from_element(
        _result(5, ProtocolOp.SEARCH_RESULT, ResultCode.REFERRAL, extra=[referral])
    )
    assert message.result_code == ResultCode.REFERRAL
    assert message.references == ("ldap://other.example.com/",)


def test_referral_without_list_is_rejected():
    with pytest.raises(LdapError):
        LdapMessage.from_element(
            _result(5, ProtocolOp.SEARCH_RESULT, ResultCode.REFERRAL)
        )


def test_non_sequence_message_is_rejected():
    with pytest.raises(LdapError):
        LdapMessage.from_element(BerElement.integer(1))


def test_end_of_stream_raises(link):
    client, server, _ = link
    server.shutdown(socket.SHUT_WR)
    with pytest.raises(LdapError):
        client.read_message()