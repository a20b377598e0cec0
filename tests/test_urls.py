"""Unit tests for URL resolution."""

import unittest

from httx.errors import InvalidUrlError
from httx.urls import (
    append_query,
    has_scheme,
    infer_scheme,
    join_url,
    looks_like_host,
    query_pairs,
    resolve_url,
    validate_url,
)


class TestInferScheme(unittest.TestCase):
    def test_keeps_existing_scheme(self):
        self.assertEqual(infer_scheme("http://example.com"), "http://example.com")
        self.assertEqual(infer_scheme("https://example.com/a"), "https://example.com/a")

    def test_localhost_shortcuts(self):
        self.assertEqual(infer_scheme(":3000/api"), "http://localhost:3000/api")
        self.assertEqual(infer_scheme(":/api"), "http://localhost/api")
        self.assertEqual(infer_scheme(":"), "http://localhost")

    def test_localhost_and_ports_use_http(self):
        self.assertEqual(infer_scheme("localhost/x"), "http://localhost/x")
        self.assertEqual(infer_scheme("localhost:8080"), "http://localhost:8080")
        self.assertEqual(infer_scheme("api.internal:8080/x"), "http://api.internal:8080/x")

    def test_domains_and_ips_use_https(self):
        self.assertEqual(infer_scheme("example.com/users"), "https://example.com/users")
        self.assertEqual(infer_scheme("10.0.0.1/status"), "https://10.0.0.1/status")

    def test_rejects_non_hosts(self):
        with self.assertRaises(InvalidUrlError):
            infer_scheme("not-a-url")

    def test_looks_like_host(self):
        for url in ["https://x.com", ":3000", "localhost/a", "api:8080/x", "example.com", "10.0.0.1"]:
            self.assertTrue(looks_like_host(url), url)
        for url in ["users", "/users", "users/1?x=1", ""]:
            self.assertFalse(looks_like_host(url), url)


class TestValidateUrl(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(validate_url("https://example.com/x?a=1"), "https://example.com/x?a=1")

    def test_rejects_other_schemes(self):
        with self.assertRaises(InvalidUrlError):
            validate_url("ftp://example.com/file")

    def test_rejects_missing_host(self):
        with self.assertRaises(InvalidUrlError):
            validate_url("http:///path")


class TestJoinUrl(unittest.TestCase):
    def test_exactly_one_slash(self):
        self.assertEqual(join_url("https://api.example.com/", "/users"), "https://api.example.com/users")
        self.assertEqual(join_url("https://api.example.com", "users"), "https://api.example.com/users")
        self.assertEqual(join_url("https://api.example.com/v1", "users/1"), "https://api.example.com/v1/users/1")

    def test_empty_path(self):
        self.assertEqual(join_url("https://api.example.com", ""), "https://api.example.com")


class TestQuery(unittest.TestCase):
    def test_query_pairs_flatten_lists(self):
        self.assertEqual(query_pairs({"tag": ["a", "b"], "page": "1"}), [("tag", "a"), ("tag", "b"), ("page", "1")])
        self.assertEqual(query_pairs(None), [])

    def test_append_keeps_existing_pairs(self):
        self.assertEqual(append_query("https://x.com/s?q=1", {"q": "2"}), "https://x.com/s?q=1&q=2")

    def test_append_encodes_values(self):
        self.assertEqual(append_query("https://x.com/s", {"q": "a b&c"}), "https://x.com/s?q=a+b%26c")

    def test_append_nothing(self):
        self.assertEqual(append_query("https://x.com/s?q=1", {}), "https://x.com/s?q=1")


class TestResolveUrl(unittest.TestCase):
    def test_absolute_url_ignores_base(self):
        self.assertEqual(resolve_url("https://other.com/a", "https://api.example.com"), "https://other.com/a")

    def test_relative_path_joins_base(self):
        self.assertEqual(resolve_url("/users", "https://api.example.com/"), "https://api.example.com/users")

    def test_base_without_scheme(self):
        self.assertEqual(resolve_url("users", ":3000"), "http://localhost:3000/users")

    def test_bare_host_without_base(self):
        self.assertEqual(resolve_url("example.com/users"), "https://example.com/users")

    def test_relative_without_base(self):
        with self.assertRaises(InvalidUrlError):
            resolve_url("/users")
        with self.assertRaises(InvalidUrlError):
            resolve_url("")

    def test_query_is_appended(self):
        url = resolve_url("https://api.example.com/search?q=1", query={"page": ["2"]})
        self.assertEqual(url, "https://api.example.com/search?q=1&page=2")

    def test_has_scheme(self):
        self.assertTrue(has_scheme("http://x"))
        self.assertFalse(has_scheme("example.com"))


if __name__ == "__main__":
    unittest.main()
