"""Unit tests for User-Agent handling."""

import unittest

from httx import __version__
from httx._user_agent import _PY_VERSION, get_user_agent


class TestGetUserAgent(unittest.TestCase):
    def test_basic_user_agent(self):
        ua = get_user_agent("python-httpx/0.28.1")
        self.assertEqual(ua, f"httx/{__version__} python/{_PY_VERSION} python-httpx/0.28.1")

    def test_user_agent_with_client_name(self):
        ua = get_user_agent("python-httpx/0.28.1", "cli")
        self.assertEqual(ua, f"httx/{__version__} python/{_PY_VERSION} python-httpx/0.28.1 cli")

    def test_user_agent_with_empty_client_name(self):
        ua = get_user_agent("python-httpx/0.28.1", "")
        self.assertEqual(ua, f"httx/{__version__} python/{_PY_VERSION} python-httpx/0.28.1")


if __name__ == "__main__":
    unittest.main()
