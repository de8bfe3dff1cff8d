# smtptables

Building blocks for lookup tables of a mail transfer agent: ASN.1 BER
encoding, RFC 4515 LDAP search filters, LDAP URLs, a small LDAPv3 client,
and a reader for simple `key value` configuration files. Everything is
plain Python with no third-party dependencies.

## Modules

### `smtptables.ber`

`BerElement` is an immutable BER element. Build one with the class methods
`integer`, `enumerated`, `boolean`, `string`, `bitstring`, `null`, `eoc`,
`oid`, `sequence` and `set`; change its class and tag with `with_header`;
read it back with `as_integer`, `as_enumerated`, `as_boolean`, `as_bytes`,
`as_oid` and `is_eoc`. Accessors raise `ValueError` when the element is of
another type. `BerClass` and `BerType` name the classes and universal types.

`encode_oid`, `decode_oid` and `parse_oid` convert object identifiers between
component tuples, BER content octets and text such as `1.2.840.113556`
(`_` and `-` are accepted as separators too).

### `smtptables.ber_codec`

`encode(element)` produces definite-length BER octets, `encoded_length`
tells how many. `decode(data)` reads the first element of a byte string and
`read_element(stream)` reads one element from a binary stream, returning
`None` at end of stream. Malformed or truncated input raises
`BerDecodeError`.

```python
from smtptables.ber import BerElement
from smtptables.ber_codec import decode, encode

element = BerElement.sequence([BerElement.integer(1), BerElement.string(b"cn")])
data = encode(element)
assert decode(data) == element
```

### `smtptables.ldap_filter`

`parse_filter(text)` turns a search filter — and, or, not, equality,
`<=`, `>=`, `~=`, presence and substring filters — into a BER element tree.
Syntax errors raise `FilterSyntaxError`.

```python
from smtptables.ldap_filter import parse_filter

search_filter = parse_filter("(&(objectClass=person)(uid=jdoe))")
```

### `smtptables.ldap_values`

`parse_value` decodes backslash hex escapes such as `\2a` in filter values;
`utf8_to_ascii` writes each multi-byte UTF-8 sequence as `?`.

### `smtptables.ldap_url`

`parse_url` splits `ldap://host:port/dn?attributes?scope?filter` into an
`LdapUrl` (`host`, `port` defaulting to 389, `dn`, `attributes`, `scope` as a
`Scope`, `filter`). Malformed URLs raise `ValueError`.

```python
from smtptables.ldap_url import Scope, parse_url

url = parse_url("ldap://ldap.example.com/dc=example,dc=com?mail,cn?sub?(uid=jdoe)")
assert url.attributes == ("mail", "cn") and url.scope is Scope.SUBTREE
```

### `smtptables.aldap`

`LdapClient` wraps a connected stream socket and offers `bind` (simple
authentication), `unbind`, `search` (always sent with a simple paged results
control) and `read_message`, which returns an `LdapMessage`. A message has
`msgid`, `message_type` (a `ProtocolOp`), `result_code` (a `ResultCode`),
`dn`, `diagnostic_message`, `references` and `page`; search entries also
offer `attributes()` and `match_attr(key)`. Failures raise `LdapError`.
`build_page_control` and `parse_page_control` handle `PageControl` values.

```python
import socket

from smtptables.aldap import LdapClient, ProtocolOp
from smtptables.ldap_url import Scope

password = "password"
with LdapClient(socket.create_connection(("ldap.example.com", 389))) as client:
    client.bind("cn=mailer,dc=example,dc=com", password)
    reply = client.read_message()
    client.search("dc=example,dc=com", Scope.SUBTREE,
                  "(mail=jdoe@example.com)", None, False, 0, 0, None)
    while (message := client.read_message()).message_type == ProtocolOp.SEARCH_ENTRY:
        print(message.dn, message.match_attr("mail"))
```

### `smtptables.config`

`load_config(path)` and `read_config(lines)` read files of `key value`
lines into a dict; the key may be followed by `:` and blank space, `#`
starts a comment, and missing values or duplicate keys raise `ConfigError`.
`parse_config_line` handles a single line and `parse_bounded_int` checks a
decimal value against bounds.

```
url       ldap://ldap.example.com
basedn    dc=example,dc=com
alias_filter  (&(objectClass=mailAlias)(mail=%s))
```

## What this package does not do

- It provides no ready-made lookup tables: there is no passwd-file, LDAP,
  SQL, Redis or socketmap table, and nothing that answers a mail server's
  table requests.
- It installs no command-line program.
- The LDAP client speaks plain LDAP over an already connected socket; it
  does not open connections itself, and offers no TLS, no SASL and no
  write operations.
- Bit strings can be built and decoded but not encoded.