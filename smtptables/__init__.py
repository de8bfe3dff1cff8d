"""BER encoding, LDAP filters, URLs and client, and configuration file reading."""

__version__ = "5.7.2"