"""
Exceptions raised by :py:mod:`ldapclient`.

Every failure a :py:class:`~ldapclient.client.LDAPClient` reports is a
subclass of :py:class:`LDAPClientError`.  When the failure came from
python-ldap, the original ``ldap.LDAPError`` is chained as ``__cause__`` and
its diagnostic text and result code are copied onto the exception.
"""

from typing import Any


def ldap_error_message(exc: Exception) -> str:
    """
    Build a human readable diagnostic from a python-ldap exception.

    python-ldap raises its errors with a dict as the first argument, holding
    ``desc`` (the text for the result code) and, sometimes, ``info`` (the
    server's diagnostic message).

    Args:
        exc: the exception to describe

    Returns:
        ``"desc: info"``, ``"desc"``, or ``str(exc)`` for anything else.

    """
    if exc.args and isinstance(exc.args[0], dict):
        details = exc.args[0]
        desc = details.get("desc", "")
        info = details.get("info")
        if isinstance(info, (tuple, list)):
            info = " ".join(str(i) for i in info)
        if info:
            info = str(info).strip()
        if desc and info:
            return f"{desc}: {info}"
        return str(desc or info or exc.__class__.__name__)
    return str(exc)


def ldap_result_code(exc: Exception) -> int | None:
    """Return the numeric LDAP result code from a python-ldap exception, if any."""
    if exc.args and isinstance(exc.args[0], dict):
        result: Any = exc.args[0].get("result")
        if isinstance(result, int):
            return result
    return None


class LDAPClientError(Exception):
    """
    Base class for all :py:mod:`ldapclient` errors.

    Args:
        msg: the error message

    Keyword Args:
        diagnostic: the diagnostic text reported by the server or libldap
        result: the numeric LDAP result code, if known

    """

    def __init__(
        self, msg: str, diagnostic: str | None = None, result: int | None = None
    ) -> None:
        super().__init__(msg)
        self.diagnostic: str | None = diagnostic
        self.result: int | None = result

    @classmethod
    def from_ldap_error(cls, msg: str, exc: Exception) -> "LDAPClientError":
        """
        Wrap a python-ldap exception, copying its diagnostic text and result code.

        Args:
            msg: what we were doing when ``exc`` happened
            exc: the python-ldap exception

        Returns:
            A new instance of ``cls``.  Callers should ``raise ... from exc``.

        """
        diagnostic = ldap_error_message(exc)
        return cls(
            f"{msg}: {diagnostic}",
            diagnostic=diagnostic,
            result=ldap_result_code(exc),
        )


class InvalidURL(LDAPClientError, ValueError):
    """The server URI is not a well formed LDAP URL."""


class NotConnected(LDAPClientError):
    """An operation needing a bound connection was called before ``connect()``."""


class TLSError(LDAPClientError):
    """StartTLS negotiation failed."""


class BindError(LDAPClientError):
    """The server rejected our bind."""


class SearchError(LDAPClientError):
    """A search failed with something other than ``noSuchObject``."""


class ProtocolError(LDAPClientError):
    """Any other non-success result (delete, whoami, unbind)."""
