import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path

from megafire.core.database import Database


class TestDatabase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db = Database(Path(self.tmpdir) / "data" / "megafire.db")

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_profile_is_seeded_once(self):
        self.assertEqual(self.db.load_credits(1000), 1000)
        self.assertEqual(self.db.load_credits(50), 1000)

    def test_credits_sync(self):
        self.db.load_credits(1000)
        asyncio.run(self.db.push_credits(420))
        self.assertEqual(self.db.load_credits(1000), 420)

    def test_rounds_newest_first(self):
        asyncio.run(self.db.record_round(7, False, None, 3000))
        asyncio.run(self.db.record_round(1, True, 10, 200))
        rounds = self.db.get_recent_rounds()
        self.assertEqual([r["winning_number"] for r in rounds], [1, 7])
        self.assertIs(rounds[0]["is_fire_hit"], True)
        self.assertEqual(rounds[0]["multiplier"], 10)
        self.assertIsNone(rounds[1]["multiplier"])
        self.assertEqual(len(self.db.get_recent_rounds(limit=1)), 1)

    def test_strategy_crud(self):
        saved = self.db.save_strategy("Corners", {"COR_1_2_4_5": 2, "RED": 1}, color_code="#ff0000")
        self.assertEqual(saved["bets"], {"COR_1_2_4_5": 2, "RED": 1})
        self.assertEqual(saved["color_code"], "#ff0000")
        self.assertEqual(self.db.get_strategy(saved["id"])["name"], "Corners")
        self.assertEqual([s["id"] for s in self.db.list_strategies()], [saved["id"]])

        self.assertTrue(self.db.delete_strategy(saved["id"]))
        self.assertFalse(self.db.delete_strategy(saved["id"]))
        self.assertIsNone(self.db.get_strategy(saved["id"]))


if __name__ == "__main__":
    unittest.main()
