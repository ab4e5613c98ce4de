# This file is here so that we can patch the ldap module in our tests.
# Everything in ldapclient talks to python-ldap through this module, so
# patching ``ldapclient.ldap.initialize`` swaps out the transport for the
# whole package.
import ldap
import ldap.sasl
from ldap import *  # noqa: F403

__version__ = ldap.__version__
sasl = ldap.sasl
