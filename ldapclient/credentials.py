"""
Bind credentials.

A bind is either a simple bind (DN + password) or a SASL interactive bind.
The two shapes are separate classes so that a caller can never half-fill
one and accidentally get the other.
"""

from dataclasses import dataclass, field

from . import ldap


@dataclass(frozen=True)
class SimpleCredentials:
    """
    Credentials for a simple bind.  Leave both fields empty for an anonymous
    bind.
    """

    binddn: str = ""
    password: str = field(default="", repr=False)

    @property
    def anonymous(self) -> bool:
        return not self.binddn and not self.password


@dataclass(frozen=True)
class SASLCredentials:
    """
    Credentials for a SASL interactive bind.

    ``mechanism`` is required (e.g. ``DIGEST-MD5``, ``GSSAPI``, ``EXTERNAL``).
    ``binddn`` is sent as the bind name, usually empty; the rest are handed
    to the SASL library when it asks for them.
    """

    mechanism: str
    binddn: str = ""
    authc_id: str | None = None
    realm: str | None = None
    authz_id: str | None = None
    password: str = field(default="", repr=False)

    def sasl_defaults(self) -> "ldap.sasl.sasl":
        """
        Build the python-ldap SASL object holding our answers to the SASL
        library's interaction callbacks.

        Returns:
            An ``ldap.sasl.sasl`` object for ``sasl_interactive_bind_s``.

        """
        callbacks: dict[int, str] = {
            ldap.sasl.CB_AUTHNAME: self.authc_id or "",
            ldap.sasl.CB_PASS: self.password or "",
            ldap.sasl.CB_USER: self.authz_id or "",
        }
        if self.realm:
            callbacks[ldap.sasl.CB_GETREALM] = self.realm
        return ldap.sasl.sasl(callbacks, self.mechanism.upper())


BindCredentials = SimpleCredentials | SASLCredentials


def make_credentials(
    binddn: str | None = None,
    password: str | None = None,
    mechanism: str | None = None,
    authc_id: str | None = None,
    realm: str | None = None,
    authz_id: str | None = None,
) -> BindCredentials:
    """
    Pick the credential type from keyword arguments: a ``mechanism`` means
    SASL, anything else is a simple bind.
    """
    if mechanism:
        return SASLCredentials(
            mechanism=mechanism,
            binddn=binddn or "",
            authc_id=authc_id,
            realm=realm,
            authz_id=authz_id,
            password=password or "",
        )
    return SimpleCredentials(binddn=binddn or "", password=password or "")
