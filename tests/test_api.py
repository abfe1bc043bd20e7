import shutil
import tempfile
import unittest
from pathlib import Path

import orjson
from fastapi.testclient import TestClient

from megafire.config import settings
from megafire.core.database import Database
from megafire.core.scheduler import ManualRoundTimer
from megafire.core.table import RouletteTable
from megafire.main import create_app
from megafire.routers import api
from tests.fakes import FixedOutcomes, make_config, outcome


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db = Database(Path(self.tmpdir) / "megafire.db")
        self.timer = ManualRoundTimer()
        self.outcomes = FixedOutcomes()
        self.table = RouletteTable(
            make_config(),
            timer=self.timer,
            recorder=self.db,
            credits_sync=self.db.push_credits,
            outcome_generator=self.outcomes,
            credits=1000,
        )
        self.app = create_app(table=self.table, db=self.db)
        self.client = TestClient(self.app)

        self.rate_limit = settings.rate_limit.model_copy()
        settings.rate_limit.enabled = False
        api.limiter.reset()

    def tearDown(self):
        settings.rate_limit = self.rate_limit
        api.limiter.reset()
        self.table.cancel()
        self.db.close()
        shutil.rmtree(self.tmpdir, ignore_errors=True)


class TestTableEndpoints(ApiTestCase):
    def test_initial_state(self):
        response = self.client.get("/api/table")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["phase"], "BETTING")
        self.assertEqual(data["balance"], 1000)
        self.assertEqual(data["bets"], {})
        self.assertFalse(data["can_rebet"])

    def test_shutdown_flushes_pending_balance(self):
        with TestClient(self.app):
            self.table.balance.apply_delta(-250)
            self.assertTrue(self.timer.is_pending("balance-sync"))
        self.assertEqual(self.db.load_credits(0), 750)

    def test_security_headers(self):
        response = self.client.get("/api/table")
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")

    def test_place_and_undo(self):
        response = self.client.post("/api/bets", json={"bet_id": "SPLIT_5_2", "amount": 50})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["bets"], {"SPLIT_2_5": 50})

        response = self.client.post("/api/bets/undo")
        self.assertEqual(response.json()["bets"], {})

        response = self.client.post("/api/bets/undo")
        self.assertEqual(response.status_code, 400)
        self.assertIn("detail", response.json())

    def test_rejections_carry_the_reason(self):
        response = self.client.post("/api/bets", json={"bet_id": "RED", "amount": 5000})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], self.table.last_rejection)

        response = self.client.post("/api/spin")
        self.assertEqual(response.status_code, 400)

    def test_chip_selection(self):
        self.assertEqual(self.client.post("/api/chips", json={"value": 7}).status_code, 400)
        response = self.client.post("/api/chips", json={"value": 100})
        self.assertEqual(response.json()["selected_chip"], 100)
        response = self.client.post("/api/bets", json={"bet_id": "RED"})
        self.assertEqual(response.json()["bets"], {"RED": 100})

    def test_full_round(self):
        self.client.post("/api/bets", json={"bet_id": "7", "amount": 100})
        self.outcomes.push(outcome(7))

        response = self.client.post("/api/spin")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["phase"], "SPINNING")
        self.assertEqual(data["balance"], 900)

        self.timer.run_all()

        data = self.client.get("/api/table").json()
        self.assertEqual(data["phase"], "BETTING")
        self.assertEqual(data["balance"], 3900)
        self.assertTrue(data["can_rebet"])
        self.assertEqual(data["history"][0]["number"], 7)

        history = self.client.get("/api/history").json()
        self.assertEqual(history["rounds"][0]["total_win"], 3000)
        self.assertEqual(self.db.load_credits(0), 3900)

        stats = self.client.get("/api/history/stats").json()
        self.assertEqual(stats["hot_numbers"][0], 7)
        self.assertEqual(stats["spins"], 1)

        response = self.client.post("/api/bets/rebet")
        self.assertEqual(response.json()["bets"], {"7": 100})

    def test_bonus_flow(self):
        self.client.post("/api/bets", json={"bet_id": "SPLIT_1_2", "amount": 40})
        self.outcomes.push(outcome(1, fire=(1,)))
        self.client.post("/api/spin")
        self.timer.run_all()

        data = self.client.get("/api/table").json()
        self.assertEqual(data["phase"], "BONUS")
        self.assertEqual(data["bonus"], {"mode": "NORMAL", "stake": 20})

        response = self.client.post("/api/bonus/collect", json={"multiplier": 5})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["bonus"]["credited"], 100)
        self.assertEqual(data["balance"], 1060)
        self.assertEqual(data["phase"], "BETTING")

        self.assertEqual(self.client.post("/api/bonus/collect").status_code, 400)

    def test_bonus_payout_follows_table_stake(self):
        self.client.post("/api/bets", json={"bet_id": "17", "amount": 10})
        self.outcomes.push(outcome(17, fire=(17,)))
        self.client.post("/api/spin")
        self.timer.run_all()

        # A client-supplied payout is not part of the request
        response = self.client.post("/api/bonus/collect", json={"multiplier": 3, "payout": 1000000})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["bonus"]["payout"], 30)
        self.assertEqual(data["bonus"]["credited"], 30)
        self.assertEqual(data["balance"], 1020)

    def test_negative_multiplier_is_refused(self):
        self.client.post("/api/bets", json={"bet_id": "17", "amount": 10})
        self.outcomes.push(outcome(17, fire=(17,)))
        self.client.post("/api/spin")
        self.timer.run_all()

        response = self.client.post("/api/bonus/collect", json={"multiplier": -4})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get("/api/table").json()["phase"], "BONUS")


class TestBoardEndpoints(ApiTestCase):
    def test_hit_preview_does_not_bet(self):
        response = self.client.post("/api/board/hit", json={"x": 82, "y": 82, "precision": True})
        self.assertEqual(response.json()["target"]["bet_id"], "COR_1_2_4_5")
        self.assertEqual(self.table.ledger.bets, {})

    def test_place_from_coordinates(self):
        response = self.client.post("/api/board/place", json={"x": 120, "y": 100, "amount": 10})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["bets"], {"5": 10})

        response = self.client.post("/api/board/place", json={"x": 400, "y": 100})
        self.assertEqual(response.status_code, 400)

    def test_racetrack_layout_and_taps(self):
        layout = self.client.get("/api/racetrack").json()
        self.assertEqual(len(layout["segments"]), 37)
        self.assertEqual([z["name"] for z in layout["zones"]], ["ZERO", "VOISINS", "ORPHELINS", "TIERS"])

        zero = layout["segments"][0]
        response = self.client.post("/api/racetrack/hit", json={"x": zero["x"], "y": zero["y"]})
        self.assertEqual(response.json()["bets"], {"0": 10})

        response = self.client.post("/api/racetrack/hit", json={"x": 100, "y": 260})
        self.assertEqual(response.json()["total_staked"], 60)

        # Left of the outer edge: neither a pocket nor a call zone
        self.assertEqual(self.client.post("/api/racetrack/hit", json={"x": 1, "y": 260}).status_code, 400)

    def test_named_call_bet(self):
        response = self.client.post("/api/racetrack/zero")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_staked"], 40)
        self.assertEqual(self.client.post("/api/racetrack/snake").status_code, 404)


class TestStrategyEndpoints(ApiTestCase):
    def test_presets_are_listed(self):
        data = self.client.get("/api/strategies").json()
        self.assertIn("JAMES_BOND", [s["id"] for s in data["presets"]])
        self.assertEqual(data["saved"], [])

    def test_save_apply_delete(self):
        response = self.client.post(
            "/api/strategies", json={"name": "Low", "bets": {"SPLIT_2_1": 2, "1-18": 3}}
        )
        self.assertEqual(response.status_code, 200)
        saved = response.json()
        self.assertEqual(saved["bets"], {"SPLIT_1_2": 2, "1-18": 3})

        response = self.client.post(f"/api/strategies/{saved['id']}/apply", json={"chip_value": 50})
        self.assertEqual(response.json()["bets"], {"SPLIT_1_2": 100, "1-18": 150})

        self.assertEqual(self.client.delete(f"/api/strategies/{saved['id']}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/strategies/{saved['id']}").status_code, 404)
        self.assertEqual(self.client.delete("/api/strategies/JAMES_BOND").status_code, 400)

    def test_malformed_layout_is_rejected(self):
        response = self.client.post("/api/strategies", json={"name": "Bad", "bets": {"SPLIT_1": 1}})
        self.assertEqual(response.status_code, 400)

    def test_apply_unknown_strategy(self):
        self.assertEqual(self.client.post("/api/strategies/nope/apply").status_code, 404)


class TestApiRateLimit(ApiTestCase):
    def test_rate_limit_applied_to_game_endpoints(self):
        settings.rate_limit.enabled = True
        settings.rate_limit.game_requests = "5/second"

        # Nothing to collect, so each call is rejected but still counted
        for i in range(5):
            response = self.client.post("/api/bonus/collect")
            self.assertNotEqual(response.status_code, 429, f"Request {i + 1}/6 was rate-limited")

        response = self.client.post("/api/bonus/collect")
        self.assertEqual(response.status_code, 429)


class TestWebSocket(ApiTestCase):
    def test_state_on_connect_and_ping(self):
        with self.client.websocket_connect("/ws") as ws:
            message = orjson.loads(ws.receive_bytes())
            self.assertEqual(message["type"], "table_state")
            self.assertEqual(message["state"]["balance"], 1000)

            ws.send_json({"type": "ping"})
            self.assertEqual(orjson.loads(ws.receive_bytes()), {"type": "pong"})

            ws.send_json({"type": "state"})
            message = orjson.loads(ws.receive_bytes())
            self.assertEqual(message["event"], "request")


if __name__ == "__main__":
    unittest.main()
