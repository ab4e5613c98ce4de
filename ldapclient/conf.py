"""
Connection options and Django settings integration.

Servers are described in ``settings.LDAP_SERVERS``, keyed by a name of your
choosing::

    LDAP_SERVERS = {
        "default": {
            "url": "ldap://ldap.example.com",
            "user": "cn=reader,dc=example,dc=com",
            "password": "secret",
            "use_starttls": True,
            "tls_verify": "always",
            "tls_ca_certfile": "/etc/ssl/certs/ca.pem",
            "timeout": 15.0,
        },
        "kerberos": {
            "url": "ldap://ldap.example.com",
            "sasl_mechanism": "GSSAPI",
        },
    }
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from . import ldap
from .credentials import BindCredentials, make_credentials

if TYPE_CHECKING:
    from .client import LDAPClient

logger = logging.getLogger(__name__)

#: The valid values for ``tls_verify``
TLS_VERIFY_MODES = ("never", "always")


def _check_file(path: str | None, label: str) -> None:
    if not path:
        return
    p = Path(path)
    if not p.exists():
        msg = f"{label} file does not exist: {path}"
        raise OSError(msg)
    if not p.is_file():
        msg = f"{label} file is not a file: {path}"
        raise OSError(msg)


@dataclass(frozen=True)
class TransportOptions:
    """
    python-ldap options applied to every connection a client opens.

    Raises:
        ValueError: ``tls_verify`` is not one of ``never`` or ``always``
        OSError: one of the certificate files is missing or is not a file

    """

    #: chase referrals inside libldap
    follow_referrals: bool = False
    #: seconds to wait for the TCP connection
    network_timeout: float = 15.0
    #: client side default size limit; ``None`` leaves libldap's default
    sizelimit: int | None = None
    #: ``never`` or ``always``: whether to demand a valid server certificate
    tls_verify: str = "never"
    tls_ca_certfile: str | None = None
    tls_certfile: str | None = None
    tls_keyfile: str | None = None

    def __post_init__(self) -> None:
        if self.tls_verify not in TLS_VERIFY_MODES:
            msg = f"Invalid tls_verify value: {self.tls_verify}"
            raise ValueError(msg)
        _check_file(self.tls_ca_certfile, "CA Certificate")
        _check_file(self.tls_certfile, "TLS Certificate")
        _check_file(self.tls_keyfile, "TLS Key")

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TransportOptions":
        """
        Build options from one entry of ``settings.LDAP_SERVERS``.

        Args:
            config: the server's settings dict

        Returns:
            The validated options.

        """
        sizelimit = config.get("sizelimit", None)
        return cls(
            follow_referrals=bool(config.get("follow_referrals", False)),
            network_timeout=float(config.get("timeout", 15.0)),
            sizelimit=int(sizelimit) if sizelimit else None,
            tls_verify=config.get("tls_verify", "never"),
            tls_ca_certfile=config.get("tls_ca_certfile", None),
            tls_certfile=config.get("tls_certfile", None),
            tls_keyfile=config.get("tls_keyfile", None),
        )

    def apply(self, connection: Any) -> None:
        """
        Set the general connection options on a fresh ``LDAPObject``.

        Args:
            connection: the ``LDAPObject`` returned by ``ldap.initialize``

        """
        connection.set_option(ldap.OPT_REFERRALS, 1 if self.follow_referrals else 0)  # type: ignore[attr-defined]
        connection.set_option(ldap.OPT_NETWORK_TIMEOUT, float(self.network_timeout))  # type: ignore[attr-defined]
        if self.sizelimit:
            connection.set_option(ldap.OPT_SIZELIMIT, int(self.sizelimit))  # type: ignore[attr-defined]

    def apply_tls(self, connection: Any) -> None:
        """
        Set the TLS options on ``connection`` and build its TLS context.  This
        must happen before ``start_tls_s()`` or the first ``ldaps`` operation.

        Args:
            connection: the ``LDAPObject`` returned by ``ldap.initialize``

        """
        if self.tls_verify == "never":
            connection.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)  # type: ignore[attr-defined]
        else:
            connection.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)  # type: ignore[attr-defined]
        if self.tls_ca_certfile:
            connection.set_option(ldap.OPT_X_TLS_CACERTFILE, self.tls_ca_certfile)  # type: ignore[attr-defined]
        if self.tls_certfile:
            connection.set_option(ldap.OPT_X_TLS_CERTFILE, self.tls_certfile)  # type: ignore[attr-defined]
        if self.tls_keyfile:
            connection.set_option(ldap.OPT_X_TLS_KEYFILE, self.tls_keyfile)  # type: ignore[attr-defined]
        connection.set_option(ldap.OPT_X_TLS_NEWCTX, 0)  # type: ignore[attr-defined]


# -----------------------
# Django settings
# -----------------------


def get_setting(setting_name: str, default_value: Any) -> Any:
    """
    Get an ``LDAPCLIENT_`` prefixed value from Django settings with a fallback.

    Args:
        setting_name: name of the setting without the ``LDAPCLIENT_`` prefix
        default_value: returned when the setting is absent, or when
            Django settings are not configured at all

    """
    if not settings.configured:
        return default_value
    return getattr(settings, f"LDAPCLIENT_{setting_name}", default_value)


def get_server_config(name: str = "default") -> dict[str, Any]:
    """
    Return the ``settings.LDAP_SERVERS`` entry for server ``name``.

    Raises:
        ImproperlyConfigured: ``LDAP_SERVERS`` is missing, has no entry for
            ``name``, or the entry has no ``url``

    """
    try:
        servers = settings.LDAP_SERVERS
    except AttributeError as e:
        msg = "settings.LDAP_SERVERS must be defined to configure LDAP clients"
        raise ImproperlyConfigured(msg) from e
    try:
        config = servers[name]
    except KeyError as e:
        msg = f'settings.LDAP_SERVERS has no server named "{name}"'
        raise ImproperlyConfigured(msg) from e
    if not config.get("url"):
        msg = f'settings.LDAP_SERVERS["{name}"] has no "url"'
        raise ImproperlyConfigured(msg)
    return config


def credentials_from_config(config: dict[str, Any]) -> BindCredentials:
    """Build bind credentials from a server's settings dict."""
    return make_credentials(
        binddn=config.get("user"),
        password=config.get("password"),
        mechanism=config.get("sasl_mechanism"),
        authc_id=config.get("sasl_authc_id"),
        realm=config.get("sasl_realm"),
        authz_id=config.get("sasl_authz_id"),
    )


def client_from_settings(name: str = "default") -> "LDAPClient":
    """
    Build an unconnected :py:class:`~ldapclient.client.LDAPClient` for server
    ``name`` in ``settings.LDAP_SERVERS``.
    """
    from .client import LDAPClient

    config = get_server_config(name)
    return LDAPClient(
        config["url"],
        tls=bool(config.get("use_starttls", False)),
        options=TransportOptions.from_config(config),
    )


def connect_from_settings(name: str = "default") -> "LDAPClient":
    """
    Build a client for server ``name`` and bind it with the configured
    credentials.

    Returns:
        A connected :py:class:`~ldapclient.client.LDAPClient`.

    """
    config = get_server_config(name)
    client = client_from_settings(name)
    client.bind(credentials_from_config(config))
    logger.info("ldapclient.settings.connected server=%s uri=%s", name, client.uri)
    return client
