"""
Tests for LDAP URL parsing.
"""

import unittest

from ldapclient import ldap
from ldapclient.exceptions import InvalidURL
from ldapclient.url import LDAPURL, parse_url


class TestParseURL(unittest.TestCase):
    """Test parse_url()."""

    def test_default_uri(self):
        url = parse_url("ldap://localhost:389/")
        self.assertIsInstance(url, LDAPURL)
        self.assertEqual(url.scheme, "ldap")
        self.assertEqual(url.host, "localhost")
        self.assertEqual(url.port, 389)
        self.assertEqual(url.dn, "")

    def test_default_ports(self):
        self.assertEqual(parse_url("ldap://ldap.example.com").port, 389)
        self.assertEqual(parse_url("ldaps://ldap.example.com/").port, 636)

    def test_scheme_is_lowercased(self):
        self.assertEqual(parse_url("LDAPS://ldap.example.com/").scheme, "ldaps")

    def test_explicit_port(self):
        url = parse_url("ldaps://ldap.example.com:1636/")
        self.assertEqual(url.host, "ldap.example.com")
        self.assertEqual(url.port, 1636)

    def test_ipv6_host(self):
        url = parse_url("ldap://[::1]:3389/")
        self.assertEqual(url.host, "::1")
        self.assertEqual(url.port, 3389)

    def test_empty_host(self):
        url = parse_url("ldap:///")
        self.assertEqual(url.host, "")
        self.assertEqual(url.port, 389)

    def test_ldapi_socket_path(self):
        url = parse_url("ldapi://%2Fvar%2Frun%2Fslapd%2Fldapi")
        self.assertEqual(url.scheme, "ldapi")
        self.assertEqual(url.host, "/var/run/slapd/ldapi")
        self.assertIsNone(url.port)

    def test_dn_attrs_scope_filter(self):
        url = parse_url(
            "ldap://ldap.example.com/ou=people,dc=example,dc=com?cn,mail?sub?(uid=fred)"
        )
        self.assertEqual(url.dn, "ou=people,dc=example,dc=com")
        self.assertEqual(url.attrs, ["cn", "mail"])
        self.assertEqual(url.scope, ldap.SCOPE_SUBTREE)
        self.assertEqual(url.filter, "(uid=fred)")

    def test_rejects_other_schemes(self):
        for uri in ("http://ldap.example.com/", "ldap.example.com", "", "ldap:/x"):
            with self.subTest(uri=uri), self.assertRaises(InvalidURL):
                parse_url(uri)

    def test_rejects_bad_ports(self):
        for uri in (
            "ldap://ldap.example.com:abc/",
            "ldap://ldap.example.com:0/",
            "ldap://ldap.example.com:70000/",
            "ldap://ldap.example.com:-1/",
        ):
            with self.subTest(uri=uri), self.assertRaises(InvalidURL):
                parse_url(uri)

    def test_rejects_malformed_hosts(self):
        for uri in ("ldap://ldap example.com/", "ldap://[::1/"):
            with self.subTest(uri=uri), self.assertRaises(InvalidURL):
                parse_url(uri)

    def test_rejects_non_strings(self):
        with self.assertRaises(InvalidURL):
            parse_url(None)  # type: ignore[arg-type]

    def test_invalid_url_is_a_value_error(self):
        with self.assertRaises(ValueError):
            parse_url("https://example.com/")
