from .client import LDAPClient  # noqa: F401
from .conf import TransportOptions, client_from_settings, connect_from_settings  # noqa: F401
from .credentials import SASLCredentials, SimpleCredentials  # noqa: F401
from .entry import LDAPEntry  # noqa: F401
from .exceptions import (  # noqa: F401
    BindError,
    InvalidURL,
    LDAPClientError,
    NotConnected,
    ProtocolError,
    SearchError,
    TLSError,
)
from .search import SearchConstraints, SearchScope  # noqa: F401
from .server_capabilities import ServerCapabilities  # noqa: F401

__version__ = "1.0.0"
