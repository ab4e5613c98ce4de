"""
LDAP URL validation and decomposition.

We lean on python-ldap's :py:mod:`ldapurl` for the RFC 4516 parsing and add
the host/port checks it leaves to the caller.
"""

from typing import NamedTuple
from urllib.parse import unquote

import ldapurl

from .exceptions import InvalidURL

#: Default ports by scheme.  ``ldapi`` URLs point at a unix socket.
DEFAULT_PORTS: dict[str, int | None] = {
    "ldap": 389,
    "ldaps": 636,
    "ldapi": None,
}

MAX_PORT = 65535


class LDAPURL(NamedTuple):
    """The pieces of an LDAP URL we care about."""

    #: ``ldap``, ``ldaps`` or ``ldapi``, lowercased
    scheme: str
    #: hostname, IP address, or socket path for ``ldapi``.  Empty means
    #: "libldap's default host".
    host: str
    #: the TCP port; ``None`` for ``ldapi``
    port: int | None
    #: the DN part of the URL, if any
    dn: str
    #: the attribute list part of the URL, if any
    attrs: list[str] | None
    #: the python-ldap scope constant, if the URL named one
    scope: int | None
    #: the filter part of the URL, if any
    filter: str | None


def _split_hostport(scheme: str, hostport: str, uri: str) -> tuple[str, int | None]:
    if scheme == "ldapi":
        return unquote(hostport), None
    if any(c.isspace() for c in hostport) or "/" in hostport:
        msg = f"Malformed host in LDAP URL: {uri!r}"
        raise InvalidURL(msg)
    host = hostport
    port_str = ""
    if hostport.startswith("["):
        # IPv6 literal: [::1] or [::1]:389
        end = hostport.find("]")
        if end == -1:
            msg = f"Unterminated IPv6 address in LDAP URL: {uri!r}"
            raise InvalidURL(msg)
        host = hostport[1:end]
        rest = hostport[end + 1 :]
        if rest:
            if not rest.startswith(":"):
                msg = f"Malformed host in LDAP URL: {uri!r}"
                raise InvalidURL(msg)
            port_str = rest[1:]
    elif ":" in hostport:
        host, port_str = hostport.rsplit(":", 1)
    if not port_str:
        return host, DEFAULT_PORTS[scheme]
    if not port_str.isdigit() or not 0 < int(port_str) <= MAX_PORT:
        msg = f"Invalid port {port_str!r} in LDAP URL: {uri!r}"
        raise InvalidURL(msg)
    return host, int(port_str)


def parse_url(uri: str) -> LDAPURL:
    """
    Validate and decompose an LDAP URL.

    Example:
        >>> parse_url("ldaps://ldap.example.com/")
        LDAPURL(scheme='ldaps', host='ldap.example.com', port=636, dn='',
                attrs=None, scope=None, filter=None)

    Args:
        uri: the URL to parse

    Raises:
        InvalidURL: ``uri`` is not a well formed LDAP URL

    Returns:
        The parsed URL.

    """
    if not isinstance(uri, str) or not ldapurl.isLDAPUrl(uri):
        msg = f"Not an LDAP URL: {uri!r}"
        raise InvalidURL(msg)
    try:
        parsed = ldapurl.LDAPUrl(ldapUrl=uri)
    except ValueError as exc:
        msg = f"Malformed LDAP URL {uri!r}: {exc}"
        raise InvalidURL(msg) from exc
    scheme = parsed.urlscheme.lower()
    if scheme not in DEFAULT_PORTS:
        msg = f"Unsupported LDAP URL scheme {scheme!r}: {uri!r}"
        raise InvalidURL(msg)
    host, port = _split_hostport(scheme, parsed.hostport or "", uri)
    return LDAPURL(
        scheme=scheme,
        host=host,
        port=port,
        dn=parsed.dn or "",
        attrs=parsed.attrs,
        scope=parsed.scope,
        filter=parsed.filterstr,
    )
