"""Unit tests for compiling argument lists into request descriptors."""

import unittest

from httx.builder import expand_fields, parse_cli_args, split_file_value, split_key
from httx.errors import InvalidArgumentError, InvalidUrlError, MissingUrlError
from httx.models import ContentMode, Empty, FieldKind, MultipartField, MultipartFields, PlainFields


class TestParseCliArgs(unittest.TestCase):
    def test_post_json_scenario(self):
        parsed = parse_cli_args(["post", "example.com/users", "name=John", "age:=25", "active:=true", "-j"])
        descriptor = parsed.descriptor
        self.assertEqual(descriptor.method, "POST")
        self.assertEqual(descriptor.url, "https://example.com/users")
        self.assertEqual(descriptor.content_mode, ContentMode.JSON)
        self.assertEqual(descriptor.body, PlainFields({"name": "John", "age": 25, "active": True}))

    def test_localhost_shortcut(self):
        descriptor = parse_cli_args(["get", ":3000/api"]).descriptor
        self.assertEqual(descriptor.url, "http://localhost:3000/api")

    def test_method_defaults_to_get(self):
        descriptor = parse_cli_args(["https://example.com"]).descriptor
        self.assertEqual(descriptor.method, "GET")
        self.assertEqual(descriptor.url, "https://example.com")
        self.assertEqual(descriptor.content_mode, ContentMode.NONE)
        self.assertEqual(descriptor.body, Empty())

    def test_method_is_case_insensitive(self):
        self.assertEqual(parse_cli_args(["DeLeTe", "example.com/x"]).descriptor.method, "DELETE")

    def test_host_port_uses_http(self):
        self.assertEqual(parse_cli_args(["example.com:8080/x"]).descriptor.url, "http://example.com:8080/x")

    def test_localhost_uses_http(self):
        self.assertEqual(parse_cli_args(["localhost:3000/api"]).descriptor.url, "http://localhost:3000/api")

    def test_url_with_query_string_is_a_url(self):
        descriptor = parse_cli_args(["get", "example.com/search?q=x"]).descriptor
        self.assertEqual(descriptor.url, "https://example.com/search?q=x")

    def test_multipart_scenario(self):
        parsed = parse_cli_args(
            ["photo@a.jpg", "photo@b.jpg", "-m"], base_url="https://api.example.com"
        )
        descriptor = parsed.descriptor
        self.assertEqual(descriptor.content_mode, ContentMode.MULTIPART)
        self.assertEqual(
            descriptor.body,
            MultipartFields(
                (
                    MultipartField("photo", FieldKind.FILE, "a.jpg"),
                    MultipartField("photo", FieldKind.FILE, "b.jpg"),
                )
            ),
        )

    def test_file_item_forces_multipart(self):
        descriptor = parse_cli_args(["-j", "post", "example.com/up", "title=x", "doc@r.pdf", "n:=2"]).descriptor
        self.assertEqual(descriptor.content_mode, ContentMode.MULTIPART)
        self.assertEqual(
            descriptor.body.fields,
            (
                MultipartField("title", FieldKind.TEXT, "x"),
                MultipartField("doc", FieldKind.FILE, "r.pdf"),
                MultipartField("n", FieldKind.TEXT, "2"),
            ),
        )

    def test_file_type_suffix(self):
        descriptor = parse_cli_args(["post", "example.com/up", "photo@a.bin;type=image/png"]).descriptor
        self.assertEqual(descriptor.body.fields[0], MultipartField("photo", FieldKind.FILE, "a.bin", "image/png"))

    def test_data_items_imply_json(self):
        descriptor = parse_cli_args(["put", "example.com/posts/1", "title=Updated"]).descriptor
        self.assertEqual(descriptor.content_mode, ContentMode.JSON)

    def test_last_mode_flag_wins(self):
        descriptor = parse_cli_args(["-j", "post", "example.com/x", "a=1", "-f"]).descriptor
        self.assertEqual(descriptor.content_mode, ContentMode.FORM)

    def test_mode_argument_is_overridden_by_flags(self):
        descriptor = parse_cli_args(["post", "example.com/x", "a=1", "--json"], ContentMode.FORM).descriptor
        self.assertEqual(descriptor.content_mode, ContentMode.JSON)

    def test_headers_and_query(self):
        descriptor = parse_cli_args(
            ["get", "example.com/x", "X-Token:abc", "tag==a", "tag==b", "page==1"]
        ).descriptor
        self.assertEqual(descriptor.headers, {"X-Token": "abc"})
        self.assertEqual(descriptor.query, {"tag": ["a", "b"], "page": ["1"]})

    def test_repeated_header_keeps_last_casing(self):
        descriptor = parse_cli_args(["example.com", "x-token:a", "X-Token:b"]).descriptor
        self.assertEqual(descriptor.headers, {"X-Token": "b"})

    def test_invalid_raw_json_is_kept_as_string(self):
        descriptor = parse_cli_args(["post", "example.com/x", "note:={not json"]).descriptor
        self.assertEqual(descriptor.body, PlainFields({"note": "{not json"}))

    def test_raw_json_types(self):
        descriptor = parse_cli_args(
            ["post", "example.com/x", "n:=1.5", "b:=false", "z:=null", "l:=[1,2]", "o:={\"a\":1}"]
        ).descriptor
        self.assertEqual(
            descriptor.body.fields, {"n": 1.5, "b": False, "z": None, "l": [1, 2], "o": {"a": 1}}
        )

    def test_bracket_expansion(self):
        descriptor = parse_cli_args(
            ["post", "example.com/x", "user[name]=John", "user[address][city]=NYC"]
        ).descriptor
        self.assertEqual(descriptor.body.fields, {"user": {"name": "John", "address": {"city": "NYC"}}})

    def test_unmatched_items_are_reported(self):
        with self.assertLogs("httx.builder", level="WARNING"):
            parsed = parse_cli_args(["get", "example.com", "oops"])
        self.assertEqual(parsed.unmatched, ("oops",))

    def test_missing_url(self):
        with self.assertRaises(MissingUrlError):
            parse_cli_args([])
        with self.assertRaises(MissingUrlError):
            parse_cli_args(["get"])

    def test_items_without_url_need_base_url(self):
        with self.assertRaises(MissingUrlError):
            parse_cli_args(["name=John"])

    def test_relative_path_with_base_url(self):
        descriptor = parse_cli_args(["get", "/users"], base_url="https://api.example.com").descriptor
        self.assertEqual(descriptor.url, "/users")

    def test_bare_path_with_base_url(self):
        descriptor = parse_cli_args(["get", "users", "page==2"], base_url="https://api.example.com").descriptor
        self.assertEqual(descriptor.url, "users")
        self.assertEqual(descriptor.query, {"page": ["2"]})

    def test_host_with_base_url_stays_absolute(self):
        descriptor = parse_cli_args(["get", "other.example.com/x"], base_url="https://api.example.com").descriptor
        self.assertEqual(descriptor.url, "https://other.example.com/x")
        descriptor = parse_cli_args(["get", ":3000/x"], base_url="https://api.example.com").descriptor
        self.assertEqual(descriptor.url, "http://localhost:3000/x")

    def test_invalid_url(self):
        with self.assertRaises(InvalidUrlError) as cm:
            parse_cli_args(["get", "not-a-url"])
        self.assertEqual(cm.exception.url, "not-a-url")
        self.assertIn("Invalid URL", str(cm.exception))

    def test_unknown_flag(self):
        with self.assertRaises(InvalidArgumentError):
            parse_cli_args(["--bogus", "example.com"])

    def test_timeout_and_stream_are_carried(self):
        descriptor = parse_cli_args(["example.com"], timeout=50, stream=True).descriptor
        self.assertEqual(descriptor.timeout, 50)
        self.assertTrue(descriptor.stream)


class TestBracketExpansion(unittest.TestCase):
    def test_split_key(self):
        self.assertEqual(split_key("name"), ["name"])
        self.assertEqual(split_key("user[address][city]"), ["user", "address", "city"])
        self.assertEqual(split_key("tags[]"), ["tags", ""])
        self.assertEqual(split_key("bad[key"), ["bad[key"])

    def test_array_brackets_append(self):
        fields = expand_fields([("images[]", "a.png"), ("images[]", "b.png")])
        self.assertEqual(fields, {"images": ["a.png", "b.png"]})

    def test_objects_inside_arrays(self):
        fields = expand_fields([("items[][name]", "a"), ("items[][name]", "b")])
        self.assertEqual(fields, {"items": [{"name": "a"}, {"name": "b"}]})

    def test_plain_key_overwrites(self):
        self.assertEqual(expand_fields([("a", "1"), ("a", "2")]), {"a": "2"})

    def test_split_file_value(self):
        self.assertEqual(split_file_value("a.jpg"), ("a.jpg", None))
        self.assertEqual(split_file_value("a.bin;type=image/png"), ("a.bin", "image/png"))


if __name__ == "__main__":
    unittest.main()
