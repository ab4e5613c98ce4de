"""
The search pipeline.

:py:func:`run_search` sends one search request, waits for the complete
response, classifies each message the server sent back, drops the useless
ones and turns the rest into :py:class:`~ldapclient.entry.LDAPEntry`
objects.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from ldap_filter import Filter

from . import ldap
from .entry import LDAPEntry
from .exceptions import SearchError
from .typing import LDAPAttributes

if TYPE_CHECKING:
    from .client import LDAPClient

logger = logging.getLogger(__name__)

#: The filter we send when the caller gave us none.
MATCH_ALL_FILTER = "(objectClass=*)"


class SearchScope(IntEnum):
    """LDAP search scopes, valued as python-ldap expects them."""

    #: only the entry named by the search base
    BASE = ldap.SCOPE_BASE  # type: ignore[attr-defined]
    #: the immediate children of the search base
    ONELEVEL = ldap.SCOPE_ONELEVEL  # type: ignore[attr-defined]
    #: the search base and everything below it
    SUBTREE = ldap.SCOPE_SUBTREE  # type: ignore[attr-defined]


@dataclass
class SearchConstraints:
    """
    Everything that goes into one search request.

    ``timeout`` (seconds) and ``sizelimit`` follow the LDAP convention: 0
    means no limit.
    """

    base: str
    scope: SearchScope = SearchScope.SUBTREE
    filter: "str | Filter | None" = None
    attrlist: list[str] | None = None
    attrsonly: bool = False
    timeout: int = 0
    sizelimit: int = 0

    def __post_init__(self) -> None:
        self.scope = SearchScope(self.scope)
        if self.timeout is not None and self.timeout < 0:
            msg = f"timeout must not be negative, got {self.timeout}"
            raise ValueError(msg)
        if self.sizelimit is not None and self.sizelimit < 0:
            msg = f"sizelimit must not be negative, got {self.sizelimit}"
            raise ValueError(msg)

    @property
    def filterstr(self) -> str:
        """The filter as a string; match-all when no filter was given."""
        if isinstance(self.filter, Filter):
            return self.filter.to_string()
        if not self.filter:
            return MATCH_ALL_FILTER
        return self.filter

    @property
    def attributes(self) -> list[str] | None:
        """The attribute list to request; ``None`` means all attributes."""
        if not self.attrlist:
            return None
        return list(self.attrlist)

    @property
    def time_limit(self) -> float:
        """The time limit in python-ldap's terms: ``-1`` means none."""
        if self.timeout and self.timeout > 0:
            return float(self.timeout)
        return -1

    @property
    def size_limit(self) -> int:
        return self.sizelimit or 0


# ---------------------
# Response messages
# ---------------------


@dataclass(frozen=True)
class SearchEntryMessage:
    """A searchResultEntry: one entry's DN and attributes."""

    dn: str
    attributes: LDAPAttributes


@dataclass(frozen=True)
class SearchReferenceMessage:
    """A searchResultReference: URLs of other servers to continue at."""

    urls: list[str]


@dataclass(frozen=True)
class OtherMessage:
    """Anything else python-ldap handed us."""

    payload: Any


SearchMessage = SearchEntryMessage | SearchReferenceMessage | OtherMessage


def classify(item: Any) -> SearchMessage:
    """
    Turn one item of python-ldap's result data into a typed message.

    python-ldap returns entries as ``(dn, {attr: [values]})`` and
    continuation references as ``(None, [url, ...])``.

    Args:
        item: one element of the ``rdata`` list from ``result3()``

    Returns:
        The classified message.

    """
    match item:
        case (str() as dn, dict() as attributes):
            return SearchEntryMessage(dn, attributes)
        case (None, list() as urls):
            return SearchReferenceMessage([str(url) for url in urls])
        case _:
            return OtherMessage(item)


def run_search(
    client: "LDAPClient | None",
    connection: Any,
    constraints: SearchConstraints,
    first_only: bool = False,
) -> list[LDAPEntry] | LDAPEntry | None:
    """
    Run one search on ``connection`` and build entries from the response.

    If the search base does not exist we return an empty result rather than
    raising.  Entries with no attributes at all are dropped.

    Args:
        client: the client that owns ``connection``; stored on each entry
        connection: a bound python-ldap ``LDAPObject``
        constraints: what to search for

    Keyword Args:
        first_only: return only the first entry that survives filtering

    Raises:
        SearchError: the server reported an error other than ``noSuchObject``

    Returns:
        In first-only mode, an :py:class:`LDAPEntry` or ``None``.  Otherwise
        a list of entries in the order the server sent them.

    """
    try:
        msgid = connection.search_ext(
            constraints.base,
            int(constraints.scope),
            filterstr=constraints.filterstr,
            attrlist=constraints.attributes,
            attrsonly=int(constraints.attrsonly),
            timeout=constraints.time_limit,
            sizelimit=constraints.size_limit,
        )
        _, rdata, _, _ = connection.result3(msgid, all=1)
    except ldap.NO_SUCH_OBJECT:  # type: ignore[attr-defined]
        logger.debug(
            "ldapclient.search.no-such-object base=%s scope=%s",
            constraints.base,
            constraints.scope.name,
        )
        return None if first_only else []
    except ldap.LDAPError as exc:  # type: ignore[attr-defined]
        msg = f"Search of {constraints.base!r} failed"
        raise SearchError.from_ldap_error(msg, exc) from exc

    results: list[LDAPEntry] = []
    for item in rdata or []:
        match classify(item):
            case SearchEntryMessage(dn=dn, attributes=attributes):
                entry = LDAPEntry.from_message(dn, attributes, client=client)
                if entry.attribute_count() == 0:
                    # Referral placeholders sometimes arrive dressed as entries
                    logger.debug("ldapclient.search.empty-entry.skipped dn=%s", dn)
                    continue
                if first_only:
                    return entry
                results.append(entry)
            case SearchReferenceMessage(urls=urls):
                # TODO: surface continuation references once we follow referrals
                logger.debug("ldapclient.search.reference.skipped urls=%s", urls)
            case OtherMessage(payload=payload):
                logger.debug("ldapclient.search.message.ignored payload=%r", payload)
    logger.debug(
        "ldapclient.search.done base=%s scope=%s filter=%s count=%d",
        constraints.base,
        constraints.scope.name,
        constraints.filterstr,
        len(results),
    )
    if first_only:
        return None
    return results
