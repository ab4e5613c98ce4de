# mypy: disable-error-code="attr-defined"
"""
End to end tests for LDAPClient against a simulated directory, using
python-ldap-faker.
"""

import unittest
from unittest.mock import patch

from ldap_faker.faker import FakeLDAPObject
from ldap_faker.unittest import LDAPFakerMixin

from ldapclient import LDAPClient
from ldapclient.exceptions import BindError, NotConnected, ProtocolError
from ldapclient.search import SearchScope


class TestLDAPClientWithFaker(LDAPFakerMixin, unittest.TestCase):
    """Test LDAPClient against python-ldap-faker's simulated server."""

    ldap_modules = ['ldapclient.client']

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.test_objects = [
            [
                "cn=admin,dc=example,dc=com",
                {
                    "cn": [b"admin"],
                    "userPassword": [b"admin"],
                    "objectclass": [b"simpleSecurityObject", b"organizationalRole", b"top"]
                }
            ],
            [
                "uid=alice,ou=users,dc=example,dc=com",
                {
                    "uid": [b"alice"],
                    "cn": [b"Alice Johnson"],
                    "sn": [b"Johnson"],
                    "mail": [b"alice@example.com"],
                    "userPassword": [b"password"],
                    "objectclass": [b"inetOrgPerson", b"top"]
                }
            ],
            [
                "uid=bob,ou=users,dc=example,dc=com",
                {
                    "uid": [b"bob"],
                    "cn": [b"Bob Smith"],
                    "sn": [b"Smith"],
                    "userPassword": [b"password"],
                    "objectclass": [b"inetOrgPerson", b"top"]
                }
            ],
            [
                "uid=charlie,ou=users,dc=example,dc=com",
                {
                    "uid": [b"charlie"],
                    "cn": [b"Charlie Brown"],
                    "sn": [b"Brown"],
                    "mail": [b"charlie@example.com"],
                    "userPassword": [b"password"],
                    "objectclass": [b"inetOrgPerson", b"top"]
                }
            ],
        ]

    def setUp(self):
        super().setUp()
        if not hasattr(self, 'ldap_faker'):
            LDAPFakerMixin.setUp(self)

        # Unbinding is covered by test_client.py
        unbind_patcher = patch.object(FakeLDAPObject, "unbind_s", autospec=True)
        unbind_patcher.start()
        self.addCleanup(unbind_patcher.stop)

        self.server_factory.default.raw_objects.clear()  # type: ignore[attr-defined]
        self.server_factory.default.objects.clear()  # type: ignore[attr-defined]
        for dn, attrs in self.test_objects:
            self.server_factory.default.register_object((dn, attrs))  # type: ignore[attr-defined]

    def connect_admin(self, **kwargs):
        client = LDAPClient("ldap://localhost:389", **kwargs)
        client.connect("cn=admin,dc=example,dc=com", "admin")
        return client

    def test_anonymous_whoami(self):
        client = LDAPClient("ldap://localhost:389")
        client.connect()
        self.assertTrue(client.connected)
        self.assertEqual(client.whoami(), "anonym")

    def test_bound_whoami(self):
        client = self.connect_admin()
        self.assertEqual(client.whoami(), "dn: cn=admin,dc=example,dc=com")

    def test_wrong_password(self):
        client = LDAPClient("ldap://localhost:389")
        with self.assertRaises(BindError) as cm:
            client.connect("cn=admin,dc=example,dc=com", "wrong")
        self.assertEqual(cm.exception.result, 49)
        self.assertEqual(cm.exception.diagnostic, "Invalid credentials")
        self.assertFalse(client.connected)
        with self.assertRaises(NotConnected):
            client.search("dc=example,dc=com", SearchScope.SUBTREE)

    def test_starttls(self):
        client = self.connect_admin(tls=True)
        self.assertTrue(client.connected)
        self.assertTrue(client._connection.tls_enabled)

    def test_no_starttls_by_default(self):
        client = self.connect_admin()
        self.assertFalse(client._connection.tls_enabled)

    def test_search_drops_entries_without_requested_attributes(self):
        client = self.connect_admin()
        entries = client.search(
            "ou=users,dc=example,dc=com",
            SearchScope.SUBTREE,
            "(objectclass=inetOrgPerson)",
            attrlist=["mail"],
        )
        self.assertEqual(
            [entry.dn for entry in entries],
            [
                "uid=alice,ou=users,dc=example,dc=com",
                "uid=charlie,ou=users,dc=example,dc=com",
            ],
        )
        self.assertEqual(entries[0].get_values("mail"), ["alice@example.com"])
        self.assertIs(entries[0].client, client)

    def test_search_onelevel(self):
        client = self.connect_admin()
        entries = client.search(
            "ou=users,dc=example,dc=com", SearchScope.ONELEVEL, "(uid=bob)"
        )
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].get_values("cn"), ["Bob Smith"])

    def test_get_entry(self):
        client = self.connect_admin()
        entry = client.get_entry("uid=alice,ou=users,dc=example,dc=com")
        self.assertIsNotNone(entry)
        self.assertEqual(entry.dn, "uid=alice,ou=users,dc=example,dc=com")
        self.assertEqual(entry.get_values("sn"), ["Johnson"])

    def test_get_entry_missing(self):
        client = self.connect_admin()
        self.assertIsNone(client.get_entry("uid=nobody,ou=users,dc=example,dc=com"))

    def test_delete_entry(self):
        client = self.connect_admin()
        client.delete_entry("uid=bob,ou=users,dc=example,dc=com")
        self.assertIsNone(client.get_entry("uid=bob,ou=users,dc=example,dc=com"))
        self.assertIsNotNone(client.get_entry("uid=alice,ou=users,dc=example,dc=com"))

    def test_delete_missing_entry(self):
        client = self.connect_admin()
        with self.assertRaises(ProtocolError) as cm:
            client.delete_entry("uid=nobody,ou=users,dc=example,dc=com")
        self.assertEqual(cm.exception.result, 32)

    def test_delete_requires_bind(self):
        client = LDAPClient("ldap://localhost:389")
        client.connect()
        with self.assertRaises(ProtocolError) as cm:
            client.delete_entry("uid=bob,ou=users,dc=example,dc=com")
        self.assertEqual(cm.exception.result, 50)
