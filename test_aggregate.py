from __future__ import annotations

import unittest

from sforename.aggregate import NamingDescriptor, aggregate
from sforename.sfo import decode_sfo
from helpers import game_record


def _rec(**kw):
    base = {"REGION": "USA", "TITLE": "Game", "TITLE_ID": "PCSE00001", "CATEGORY": "gd"}
    base.update(kw)
    return base


class AggregateTests(unittest.TestCase):
    def test_two_records_last_qualifying_wins(self):
        first = decode_sfo(game_record(title="Game", app_ver="01.00", category="gd"))
        second = decode_sfo(game_record(title="Game Patched", app_ver="01.01", category="ac"))
        desc = aggregate([first, second])
        self.assertEqual(desc.title, "Game Patched")
        self.assertEqual(desc.app_ver, "01.01")
        self.assertEqual(desc.version, "1.00")
        self.assertEqual(desc.ac_count, 1)
        self.assertEqual(desc.title_id, "PCSE00001")
        self.assertEqual(desc.region, "USA")
        self.assertEqual(desc.filename(".zip"), "Game Patched (01.01-1.00-1) [PCSE00001] (USA).zip")

    def test_same_record_twice_doubles_addon_count_only(self):
        rec = _rec(APP_VER="01.00", VERSION="1.00", CATEGORY="ac")
        once = aggregate([rec])
        twice = aggregate([rec, rec])
        self.assertEqual(once.ac_count, 1)
        self.assertEqual(twice.ac_count, 2)
        for attr in ("title", "app_ver", "version", "title_id", "region"):
            self.assertEqual(getattr(once, attr), getattr(twice, attr))

    def test_versions_compare_as_strings(self):
        desc = aggregate([_rec(APP_VER="02.00", VERSION="02.00"), _rec(APP_VER="10.00", VERSION="10.00")])
        self.assertEqual(desc.app_ver, "10.00")
        self.assertEqual(desc.version, "10.00")

        desc = aggregate([_rec(APP_VER="2.00", VERSION="2.00"), _rec(APP_VER="10.00", VERSION="10.00")])
        self.assertEqual(desc.app_ver, "2.00")
        self.assertEqual(desc.version, "2.00")

    def test_title_follows_last_record_not_highest_version(self):
        desc = aggregate(
            [
                _rec(TITLE="Update", APP_VER="01.05", VERSION="1.00"),
                _rec(TITLE="Base", APP_VER="01.00", VERSION="1.00", TITLE_ID="PCSB00001", REGION="EUR"),
            ]
        )
        self.assertEqual(desc.app_ver, "01.05")
        self.assertEqual(desc.title, "Base")
        self.assertEqual(desc.title_id, "PCSB00001")
        self.assertEqual(desc.region, "EUR")

    def test_records_without_app_ver_only_count_addons(self):
        desc = aggregate(
            [
                _rec(APP_VER="01.00", VERSION="1.00"),
                _rec(TITLE="Disc metadata", CATEGORY="ac"),
            ]
        )
        self.assertEqual(desc.title, "Game")
        self.assertEqual(desc.ac_count, 1)
        self.assertFalse(desc.empty)

    def test_no_app_ver_means_empty(self):
        desc = aggregate([_rec(), _rec(CATEGORY="ac"), {"REGION": "UNK"}])
        self.assertTrue(desc.empty)
        self.assertEqual(desc.ac_count, 1)
        with self.assertRaises(ValueError):
            desc.filename()
        self.assertTrue(aggregate([]).empty)

    def test_fold_is_incremental(self):
        desc = NamingDescriptor()
        desc.add(_rec(APP_VER="01.00", VERSION="1.00"))
        desc.add(_rec(APP_VER="01.02", VERSION="1.00", TITLE="Game v2"))
        self.assertEqual(desc.filename(".ZIP"), "Game v2 (01.02-1.00-0) [PCSE00001] (USA).ZIP")


if __name__ == "__main__":
    unittest.main()
