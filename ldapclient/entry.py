"""
Directory entries returned by searches.
"""

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from .typing import LDAPAttributes

if TYPE_CHECKING:
    from .client import LDAPClient


class LDAPEntry(Mapping):
    """
    One directory entry: its DN plus a read-only, case-insensitive mapping of
    attribute name to the raw values (``list[bytes]``) the server sent.

    Attribute names keep the case the server used; lookups ignore case, the
    way LDAP attribute descriptions do.

    Args:
        dn: the distinguished name of the entry
        attributes: attribute name to list of values

    Keyword Args:
        client: the :py:class:`~ldapclient.client.LDAPClient` that fetched us

    """

    def __init__(
        self,
        dn: str,
        attributes: LDAPAttributes | None = None,
        client: "LDAPClient | None" = None,
    ) -> None:
        self.dn: str = dn
        self.client: LDAPClient | None = client
        self._attributes: LDAPAttributes = {}
        # lowercased attribute name -> attribute name as the server sent it
        self._names: dict[str, str] = {}
        for name, values in (attributes or {}).items():
            key = name.lower()
            if key in self._names:
                # Same attribute under two spellings: merge them
                self._attributes[self._names[key]].extend(values)
                continue
            self._names[key] = name
            self._attributes[name] = list(values)

    @classmethod
    def from_message(
        cls,
        dn: str,
        attributes: LDAPAttributes,
        client: "LDAPClient | None" = None,
    ) -> "LDAPEntry":
        """
        Build an entry from a decoded search-result-entry message.

        Args:
            dn: the DN from the message
            attributes: the attribute dict from the message

        Keyword Args:
            client: the client that ran the search

        Returns:
            A new :py:class:`LDAPEntry`.

        """
        return cls(dn, attributes, client=client)

    def attribute_count(self) -> int:
        """Return how many attributes this entry carries."""
        return len(self._attributes)

    def get_values(self, name: str, encoding: str = "utf-8") -> list[str]:
        """
        Return the values of attribute ``name`` decoded to ``str``, or an empty
        list if we don't have that attribute.
        """
        return [value.decode(encoding) for value in self.get(name, [])]

    def __getitem__(self, name: str) -> list[bytes]:
        return self._attributes[self._names[name.lower()]]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return self.attribute_count()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LDAPEntry):
            return NotImplemented
        return self.dn.lower() == other.dn.lower() and self._attributes == other._attributes

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<LDAPEntry dn={self.dn!r} attributes={sorted(self._attributes)!r}>"
