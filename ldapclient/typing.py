"""
LDAP client type definitions.

Type aliases for the data shapes python-ldap hands back to us.
"""

LDAPAttributes = dict[str, list[bytes]]
LDAPData = tuple[str, LDAPAttributes]
LDAPReference = tuple[None, list[str]]
LDAPResultItem = LDAPData | LDAPReference
