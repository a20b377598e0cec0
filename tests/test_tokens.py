"""Unit tests for request item classification."""

import unittest

from httx.tokens import ClassifiedToken, TokenKind, classify


class TestClassify(unittest.TestCase):
    def test_raw_json(self):
        self.assertEqual(classify("age:=25"), ClassifiedToken(TokenKind.RAW_JSON, "age", "25"))

    def test_file_upload(self):
        self.assertEqual(classify("photo@a.jpg"), ClassifiedToken(TokenKind.FILE_UPLOAD, "photo", "a.jpg"))

    def test_query(self):
        self.assertEqual(classify("q==search"), ClassifiedToken(TokenKind.QUERY, "q", "search"))

    def test_header(self):
        self.assertEqual(classify("X-Token:abc"), ClassifiedToken(TokenKind.HEADER, "X-Token", "abc"))

    def test_data(self):
        self.assertEqual(classify("name=John"), ClassifiedToken(TokenKind.DATA, "name", "John"))

    def test_raw_json_is_not_a_header_or_data(self):
        item = classify("active:=true")
        self.assertEqual(item.kind, TokenKind.RAW_JSON)
        self.assertEqual(item.value, "true")

    def test_query_is_not_data(self):
        item = classify("page==2")
        self.assertEqual(item.kind, TokenKind.QUERY)
        self.assertEqual(item.value, "2")

    def test_data_value_may_contain_at_sign(self):
        item = classify("email=john@example.com")
        self.assertEqual(item.kind, TokenKind.DATA)
        self.assertEqual(item.key, "email")
        self.assertEqual(item.value, "john@example.com")

    def test_header_value_may_contain_separators(self):
        item = classify("Authorization:Bearer a=b:c")
        self.assertEqual(item.kind, TokenKind.HEADER)
        self.assertEqual(item.value, "Bearer a=b:c")

    def test_bracketed_key_is_kept_verbatim(self):
        item = classify("user[address][city]=NYC")
        self.assertEqual(item.kind, TokenKind.DATA)
        self.assertEqual(item.key, "user[address][city]")

    def test_unmatched(self):
        item = classify("example.com/users")
        self.assertEqual(item.kind, TokenKind.UNMATCHED)
        self.assertEqual(item.value, "example.com/users")

    def test_empty_value_is_unmatched(self):
        self.assertEqual(classify("name=").kind, TokenKind.UNMATCHED)

    def test_classification_is_idempotent(self):
        for token in ["a:=1", "f@x", "q==1", "H:v", "k=v", "nothing"]:
            self.assertEqual(classify(token), classify(token))

    def test_body_items(self):
        self.assertTrue(classify("a=1").is_body_item)
        self.assertTrue(classify("a:=1").is_body_item)
        self.assertTrue(classify("a@f").is_body_item)
        self.assertFalse(classify("a==1").is_body_item)
        self.assertFalse(classify("a:1").is_body_item)


if __name__ == "__main__":
    unittest.main()
