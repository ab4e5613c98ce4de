"""
LDAP server capability detection and caching.

This module provides the ServerCapabilities class, which reads a server's
Root DSE and answers questions about which extensions, controls and SASL
mechanisms the server supports.
"""

import logging
import threading
import time
from typing import TYPE_CHECKING, Any, ClassVar

from .conf import get_setting
from .entry import LDAPEntry
from .exceptions import SearchError

if TYPE_CHECKING:
    from .client import LDAPClient

logger = logging.getLogger(__name__)

#: Result codes meaning "we could not talk to the server at all"
SERVER_DOWN_RESULT = -1
CONNECT_ERROR_RESULT = -11


class ServerCapabilities:
    """
    What a server advertises in its Root DSE.

    Build one with :py:meth:`detect`, which queries the server once per URI
    and caches the answer, or directly from a Root DSE entry with
    :py:meth:`from_rootdse`.

    Args:
        root_dse: the server's Root DSE, or ``None`` if it has none we can read

    """

    #: Class-level cache of detected capabilities by server URI
    _server_cache: ClassVar[dict[str, dict[str, Any]]] = {}
    #: Thread lock for cache access
    _lock = threading.Lock()

    # Constants for well known OIDs
    STARTTLS_OID = "1.3.6.1.4.1.1466.20037"
    WHOAMI_OID = "1.3.6.1.4.1.4203.1.11.3"
    PASSWORD_MODIFY_OID = "1.3.6.1.4.1.4203.1.11.1"
    SORTING_OID = "1.2.840.113556.1.4.473"
    PAGING_OID = "1.2.840.113556.1.4.319"
    VLV_OID = "2.16.840.1.113730.3.4.9"

    def __init__(self, root_dse: LDAPEntry | None = None) -> None:
        self.root_dse = root_dse
        self.naming_contexts: list[str] = self._values("namingContexts")
        self.alt_servers: list[str] = self._values("altServer")
        self.supported_extensions: set[str] = set(self._values("supportedExtension"))
        self.supported_controls: set[str] = set(self._values("supportedControl"))
        self.supported_sasl_mechanisms: set[str] = {
            mech.upper() for mech in self._values("supportedSASLMechanisms")
        }
        self.supported_ldap_versions: set[int] = set()
        for version in self._values("supportedLDAPVersion"):
            try:
                self.supported_ldap_versions.add(int(version))
            except ValueError:
                logger.warning(
                    "ldapclient.capabilities.bad-version value=%r", version
                )

    def _values(self, attr: str) -> list[str]:
        if self.root_dse is None:
            return []
        return self.root_dse.get_values(attr, encoding="utf-8")

    @classmethod
    def from_rootdse(cls, root_dse: LDAPEntry | None) -> "ServerCapabilities":
        """Build capabilities from a Root DSE entry."""
        return cls(root_dse)

    def supports_control(self, oid: str) -> bool:
        return oid in self.supported_controls

    def supports_extension(self, oid: str) -> bool:
        return oid in self.supported_extensions

    def supports_sasl_mechanism(self, mechanism: str) -> bool:
        return mechanism.upper() in self.supported_sasl_mechanisms

    @property
    def supports_starttls(self) -> bool:
        return self.supports_extension(self.STARTTLS_OID)

    @property
    def supports_whoami(self) -> bool:
        return self.supports_extension(self.WHOAMI_OID)

    def __repr__(self) -> str:
        return (
            f"<ServerCapabilities naming_contexts={self.naming_contexts!r} "
            f"sasl={sorted(self.supported_sasl_mechanisms)!r}>"
        )

    # -----------------------
    # Detection and caching
    # -----------------------

    @classmethod
    def _get_cache_ttl(cls) -> int:
        """Get cache TTL from settings or use fallback."""
        return get_setting("CACHE_TTL", 3600)  # 1 hour default

    @classmethod
    def _is_cache_valid(cls, cached_info: dict[str, Any]) -> bool:
        """
        Check if cached information is still valid based on TTL.

        Args:
            cached_info: Cached server information

        Returns:
            True if cache is still valid, False otherwise

        """
        if "cached_at" not in cached_info:
            return False
        return (time.time() - cached_info["cached_at"]) < cls._get_cache_ttl()

    @classmethod
    def detect(cls, client: "LDAPClient") -> "ServerCapabilities":
        """
        Return the capabilities of the server ``client`` is connected to,
        reading its Root DSE only once per URI (until the cache expires).

        A server that refuses to show us its Root DSE is treated as
        supporting nothing.

        Args:
            client: a connected client

        Raises:
            NotConnected: ``client`` is not connected
            SearchError: we lost the connection to the server

        Returns:
            The server's capabilities.

        """
        with cls._lock:
            cached_info = cls._server_cache.get(client.uri)
            if cached_info is not None and cls._is_cache_valid(cached_info):
                return cached_info["capabilities"]

            try:
                root_dse = client.get_rootdse()
            except SearchError as e:
                if e.result in (SERVER_DOWN_RESULT, CONNECT_ERROR_RESULT):
                    raise
                logger.warning(
                    "ldapclient.capabilities.rootdse.failed uri=%s error=%s",
                    client.uri,
                    e.diagnostic,
                )
                root_dse = None

            capabilities = cls(root_dse)
            cls._server_cache[client.uri] = {
                "capabilities": capabilities,
                "cached_at": time.time(),
            }
            logger.info(
                "ldapclient.capabilities.detected uri=%s extensions=%d controls=%d",
                client.uri,
                len(capabilities.supported_extensions),
                len(capabilities.supported_controls),
            )
            return capabilities

    @classmethod
    def clear_cache(cls, uri: str | None = None) -> None:
        """
        Clear cache for a specific URI or all URIs.

        Args:
            uri: server URI to clear, or None to clear all

        """
        with cls._lock:
            if uri is None:
                cls._server_cache.clear()
            else:
                cls._server_cache.pop(uri, None)
