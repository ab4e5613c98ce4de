"""
The LDAP client session.

:py:class:`LDAPClient` owns one connection to one directory server.  It
handles connecting (StartTLS, then a simple or SASL bind), the directory
operations, and closing the connection again.

An :py:class:`LDAPClient` is not thread-safe: use one client per thread.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from functools import wraps
from typing import Any

from ldap_filter import Filter

from . import ldap
from .conf import TransportOptions
from .credentials import (
    BindCredentials,
    SASLCredentials,
    SimpleCredentials,
    make_credentials,
)
from .entry import LDAPEntry
from .exceptions import BindError, NotConnected, ProtocolError, TLSError
from .search import SearchConstraints, SearchScope, run_search
from .url import parse_url

logger = logging.getLogger(__name__)

#: The URI we connect to when none is given
DEFAULT_URI = "ldap://localhost:389/"

#: The Root DSE attributes :py:meth:`LDAPClient.get_rootdse` asks for
ROOT_DSE_ATTRIBUTES = [
    "namingContexts",
    "altServer",
    "supportedExtension",
    "supportedControl",
    "supportedSASLMechanisms",
    "supportedLDAPVersion",
]

#: What :py:meth:`LDAPClient.whoami` returns for an anonymous bind
ANONYMOUS_IDENTITY = "anonym"


# -----------------------
# Decorators
# -----------------------


def requires_connection(func: Callable) -> Callable:
    """
    Decorator for :py:class:`LDAPClient` methods that need a bound connection.

    Raises:
        NotConnected: the client has not connected yet, or has been closed

    """

    @wraps(func)
    def wrapper(self, *args, **kwargs) -> Any:
        if not self.connected:
            msg = "Client has to connect to the server first."
            raise NotConnected(msg)
        return func(self, *args, **kwargs)

    return wrapper


class LDAPClient:
    """
    A connection to a single LDAP server.

    Example:
        >>> with LDAPClient("ldap://ldap.example.com", tls=True) as client:
        ...     client.connect("cn=reader,dc=example,dc=com", "secret")
        ...     people = client.search("ou=people,dc=example,dc=com",
        ...                            SearchScope.ONELEVEL, "(uid=fred)")

    Args:
        uri: the LDAP URL of the server.  Defaults to ``ldap://localhost:389/``.

    Keyword Args:
        tls: upgrade the connection with StartTLS before binding.  Ignored for
            ``ldaps://`` URLs, which are encrypted already.
        options: connection options; see :py:class:`~ldapclient.conf.TransportOptions`

    Raises:
        InvalidURL: ``uri`` is not a well formed LDAP URL

    """

    def __init__(
        self,
        uri: str | None = None,
        tls: bool = False,
        options: TransportOptions | None = None,
    ) -> None:
        if uri is None:
            uri = DEFAULT_URI
        self.url = parse_url(uri)
        self.uri: str = uri
        self.tls: bool = bool(tls)
        # ldaps:// is encrypted from the start
        if self.url.scheme == "ldaps":
            self.tls = False
        self.options: TransportOptions = options or TransportOptions()
        self._connection: Any = None

    def __repr__(self) -> str:
        return f"<LDAPClient uri={self.uri!r} tls={self.tls} connected={self.connected}>"

    def __enter__(self) -> "LDAPClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_connection", None) is not None:
            with suppress(Exception):
                self._connection.unbind_s()
            self._connection = None

    @property
    def connected(self) -> bool:
        """``True`` once a bind has succeeded, until :py:meth:`close`."""
        return self._connection is not None

    # -----------------------
    # Connecting
    # -----------------------

    def connect(
        self,
        binddn: str | None = None,
        password: str | None = None,
        mechanism: str | None = None,
        authc_id: str | None = None,
        realm: str | None = None,
        authz_id: str | None = None,
    ) -> None:
        """
        Open the connection and bind.

        With no arguments this is an anonymous simple bind.  Passing
        ``mechanism`` selects a SASL interactive bind, in which case
        ``binddn`` is sent as the bind name (usually left empty) and
        ``authc_id``, ``realm``, ``authz_id`` and ``password`` are handed to
        the SASL mechanism.

        Keyword Args:
            binddn: the DN to bind as
            password: the password (both bind types)
            mechanism: the SASL mechanism name, e.g. ``DIGEST-MD5``
            authc_id: the SASL authentication identity
            realm: the SASL realm
            authz_id: the SASL authorization identity

        Raises:
            TLSError: StartTLS failed
            BindError: the connection could not be set up, or the server
                rejected the bind

        """
        self.bind(
            make_credentials(
                binddn=binddn,
                password=password,
                mechanism=mechanism,
                authc_id=authc_id,
                realm=realm,
                authz_id=authz_id,
            )
        )

    def bind(self, credentials: BindCredentials, protocol_version: int = 3) -> None:
        """
        Open the connection, run StartTLS if we were asked to, and bind with
        ``credentials``.  If anything fails the client stays unconnected.

        Args:
            credentials: a :py:class:`~ldapclient.credentials.SimpleCredentials`
                or :py:class:`~ldapclient.credentials.SASLCredentials`

        Keyword Args:
            protocol_version: the LDAP protocol version to speak

        Raises:
            ProtocolError: the client is already connected
            TLSError: StartTLS failed
            BindError: the connection could not be set up, or the server
                rejected the bind

        """
        if self.connected:
            msg = f"Already connected to {self.uri}; close() first."
            raise ProtocolError(msg)
        try:
            connection = ldap.initialize(self.uri)  # type: ignore[attr-defined]
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = f"Could not open a connection to {self.uri}"
            raise BindError.from_ldap_error(msg, exc) from exc
        try:
            self._set_options(connection, protocol_version)
            self._start_tls(connection)
            self._bind(connection, credentials)
        except BaseException:
            with suppress(ldap.LDAPError):  # type: ignore[attr-defined]
                connection.unbind_s()
            raise
        self._connection = connection
        logger.info(
            "ldapclient.connect.success uri=%s tls=%s mechanism=%s",
            self.uri,
            self.tls,
            getattr(credentials, "mechanism", "SIMPLE"),
        )

    def _set_options(self, connection: Any, protocol_version: int) -> None:
        try:
            connection.set_option(ldap.OPT_PROTOCOL_VERSION, protocol_version)  # type: ignore[attr-defined]
            self.options.apply(connection)
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = f"Setting connection options for {self.uri} failed"
            raise BindError.from_ldap_error(msg, exc) from exc

    def _start_tls(self, connection: Any) -> None:
        try:
            self.options.apply_tls(connection)
            if self.tls:
                connection.start_tls_s()
        except (ldap.LDAPError, ValueError) as exc:  # type: ignore[attr-defined]
            logger.warning("ldapclient.connect.starttls.failed uri=%s", self.uri)
            msg = f"StartTLS with {self.uri} failed"
            raise TLSError.from_ldap_error(msg, exc) from exc

    def _bind(self, connection: Any, credentials: BindCredentials) -> None:
        try:
            match credentials:
                case SASLCredentials():
                    connection.sasl_interactive_bind_s(
                        credentials.binddn,
                        credentials.sasl_defaults(),
                        sasl_flags=ldap.SASL_QUIET,  # type: ignore[attr-defined]
                    )
                case SimpleCredentials(anonymous=True):
                    connection.simple_bind_s()
                case SimpleCredentials(binddn=binddn, password=password):
                    connection.simple_bind_s(binddn, password)
                case _:
                    msg = f"Unsupported credentials: {type(credentials).__name__}"
                    raise TypeError(msg)
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            logger.warning(
                "ldapclient.connect.bind.failed uri=%s mechanism=%s",
                self.uri,
                getattr(credentials, "mechanism", "SIMPLE"),
            )
            msg = f"Bind to {self.uri} failed"
            raise BindError.from_ldap_error(msg, exc) from exc

    def close(self) -> None:
        """
        Unbind and drop the connection.  Safe to call any number of times.

        Raises:
            ProtocolError: the unbind failed.  The connection is dropped anyway.

        """
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.unbind_s()
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = f"Unbind from {self.uri} failed"
            raise ProtocolError.from_ldap_error(msg, exc) from exc
        logger.debug("ldapclient.close uri=%s", self.uri)

    # -----------------------
    # Operations
    # -----------------------

    @requires_connection
    def delete_entry(self, dn: str | None) -> None:
        """
        Delete the entry ``dn``.  An empty ``dn`` does nothing.

        Args:
            dn: the DN of the entry to delete

        Raises:
            NotConnected: :py:meth:`connect` has not succeeded yet
            ProtocolError: the server refused the delete

        """
        if not dn:
            return
        try:
            self._connection.delete_s(dn)
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = f"Delete of {dn!r} failed"
            raise ProtocolError.from_ldap_error(msg, exc) from exc
        logger.info("ldapclient.delete.success dn=%s", dn)

    @requires_connection
    def get_entry(self, dn: str) -> LDAPEntry | None:
        """
        Return the entry named ``dn``, or ``None`` if there is no such entry.

        Raises:
            NotConnected: :py:meth:`connect` has not succeeded yet
            SearchError: the search failed

        """
        return run_search(
            self,
            self._connection,
            SearchConstraints(base=dn, scope=SearchScope.BASE),
            first_only=True,
        )  # type: ignore[return-value]

    @requires_connection
    def get_rootdse(self) -> LDAPEntry | None:
        """
        Return the server's Root DSE, limited to the attributes describing
        what the server supports.

        Raises:
            NotConnected: :py:meth:`connect` has not succeeded yet
            SearchError: the search failed

        """
        return run_search(
            self,
            self._connection,
            SearchConstraints(
                base="",
                scope=SearchScope.BASE,
                filter="(objectclass=*)",
                attrlist=ROOT_DSE_ATTRIBUTES,
            ),
            first_only=True,
        )  # type: ignore[return-value]

    @requires_connection
    def search(
        self,
        base: str,
        scope: SearchScope | int,
        filter: str | Filter | None = None,  # noqa: A002
        attrlist: list[str] | None = None,
        timeout: int = 0,
        sizelimit: int = 0,
        attrsonly: bool = False,
    ) -> list[LDAPEntry]:
        """
        Search for entries.

        Args:
            base: the DN to search from
            scope: one of :py:class:`~ldapclient.search.SearchScope`

        Keyword Args:
            filter: an LDAP filter string or ``ldap_filter.Filter``; empty
                means every entry
            attrlist: the attributes to return; empty means all of them
            timeout: server side time limit in seconds; 0 for none
            sizelimit: the most entries to return; 0 for no limit
            attrsonly: return attribute names without values

        Raises:
            NotConnected: :py:meth:`connect` has not succeeded yet
            SearchError: the search failed

        Returns:
            The entries found, in the order the server sent them.  A ``base``
            that does not exist gives an empty list.

        """
        constraints = SearchConstraints(
            base=base,
            scope=scope,  # type: ignore[arg-type]
            filter=filter,
            attrlist=attrlist,
            attrsonly=attrsonly,
            timeout=timeout,
            sizelimit=sizelimit,
        )
        return run_search(self, self._connection, constraints)  # type: ignore[return-value]

    @requires_connection
    def whoami(self) -> str:
        """
        LDAPv3 "Who am I?" extended operation.

        Raises:
            NotConnected: :py:meth:`connect` has not succeeded yet
            ProtocolError: the operation failed

        Returns:
            The authorization identity (e.g. ``dn:cn=admin,dc=example,dc=com``),
            or ``"anonym"`` for an anonymous bind.

        """
        try:
            authzid = self._connection.whoami_s()
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = "Who am I? operation failed"
            raise ProtocolError.from_ldap_error(msg, exc) from exc
        return authzid or ANONYMOUS_IDENTITY
