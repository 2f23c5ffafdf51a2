from __future__ import annotations

import unittest

from focusgate.blocklist import (
    DEFAULT_BLOCKED_WEBSITES,
    BlockList,
    hostname_of,
    normalize_hostname,
    normalize_websites,
)
from focusgate.errors import InvalidConfigError
from focusgate.store import MemoryStateStore


class TestHostnames(unittest.TestCase):
    def test_normalize_hostname(self) -> None:
        cases = {
            "YouTube.com": "youtube.com",
            " https://www.Instagram.com/explore ": "instagram.com",
            "reddit.com/r/python": "reddit.com",
            "m.facebook.com:443": "m.facebook.com",
            "": "",
            "   ": "",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(normalize_hostname(raw), expected)

    def test_normalize_websites_dedupes_in_order(self) -> None:
        self.assertEqual(
            normalize_websites("youtube.com, www.youtube.com,, Twitch.tv"),
            ["youtube.com", "twitch.tv"],
        )

    def test_hostname_of(self) -> None:
        self.assertEqual(hostname_of("https://WWW.YouTube.com/watch?v=1"), "www.youtube.com")
        self.assertIsNone(hostname_of("not a url"))


class TestBlockList(unittest.TestCase):
    def test_defaults_written_on_first_use(self) -> None:
        store = MemoryStateStore()
        blocklist = BlockList(store)
        self.assertEqual(blocklist.websites(), list(DEFAULT_BLOCKED_WEBSITES))
        self.assertEqual(store.get_json("blocked_websites"), list(DEFAULT_BLOCKED_WEBSITES))

    def test_add_and_remove(self) -> None:
        blocklist = BlockList(MemoryStateStore())
        self.assertEqual(
            blocklist.add("https://www.reddit.com/"),
            ["instagram.com", "youtube.com", "reddit.com"],
        )
        self.assertEqual(blocklist.remove("YouTube.com"), ["instagram.com", "reddit.com"])

    def test_removing_last_site_leaves_list_empty(self) -> None:
        store = MemoryStateStore()
        blocklist = BlockList(store)
        blocklist.remove("instagram.com")
        self.assertEqual(blocklist.remove("youtube.com"), [])

        reopened = BlockList(store)
        self.assertEqual(reopened.websites(), [])
        self.assertFalse(reopened.should_redirect("https://instagram.com/x"))
        self.assertEqual(store.get_json("blocked_websites"), [])

    def test_add_rejects_empty(self) -> None:
        with self.assertRaises(InvalidConfigError):
            BlockList(MemoryStateStore()).add("   ")

    def test_should_redirect(self) -> None:
        blocklist = BlockList(MemoryStateStore())
        blocklist.replace(["youtube.com"])
        self.assertTrue(blocklist.should_redirect("https://www.youtube.com/watch?v=x"))
        self.assertTrue(blocklist.should_redirect("https://music.youtube.com/"))
        self.assertFalse(blocklist.should_redirect("https://docs.python.org/3/"))
        self.assertFalse(blocklist.should_redirect("garbage"))

    def test_disabled_gate_never_redirects(self) -> None:
        blocklist = BlockList(MemoryStateStore())
        self.assertTrue(blocklist.enabled())
        blocklist.set_enabled(False)
        self.assertFalse(blocklist.enabled())
        self.assertFalse(blocklist.should_redirect("https://youtube.com"))


if __name__ == "__main__":
    unittest.main()
