"""Unit tests for Ok/Err outcomes."""

import unittest

from httx.errors import NetworkError
from httx.result import Err, Ok


class TestResult(unittest.TestCase):
    def test_ok(self):
        ok = Ok(1)
        self.assertTrue(ok.is_ok())
        self.assertFalse(ok.is_err())
        self.assertEqual(ok.unwrap(), 1)
        self.assertEqual(ok.map(lambda v: v + 1), Ok(2))
        self.assertEqual(ok.match(lambda v: f"ok {v}", lambda e: "err"), "ok 1")
        with self.assertRaises(ValueError):
            ok.unwrap_err()

    def test_err(self):
        error = NetworkError(OSError("boom"), method="GET", url="https://x.com")
        err = Err(error)
        self.assertTrue(err.is_err())
        self.assertFalse(err.is_ok())
        self.assertIs(err.unwrap_err(), error)
        self.assertIs(err.map(lambda v: v + 1), err)
        self.assertEqual(err.match(lambda v: "ok", lambda e: e.exit_code), 2)
        with self.assertRaises(NetworkError):
            err.unwrap()

    def test_err_with_non_exception(self):
        with self.assertRaises(ValueError):
            Err("nope").unwrap()


if __name__ == "__main__":
    unittest.main()
