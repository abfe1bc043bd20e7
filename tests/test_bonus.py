import unittest

from megafire.core.rng import TableRNG
from megafire.core.roulette.bonus import BonusGame, BonusMode, bonus_payout


class TestBonusGame(unittest.TestCase):
    def test_multiplier_is_sum_of_the_grid(self):
        game = BonusGame(TableRNG(seed=11))
        result = game.play(20)
        landed = [cell for cell in result.grid if cell is not None]
        self.assertEqual(result.multiplier, sum(landed))
        self.assertEqual(result.payout, bonus_payout(result.multiplier, 20))
        self.assertEqual(result.credited, result.payout)

    def test_seeded_rounds_repeat(self):
        first = BonusGame(TableRNG(seed=3)).play(10)
        second = BonusGame(TableRNG(seed=3)).play(10)
        self.assertEqual(first, second)

    def test_certain_landing_fills_the_grid(self):
        game = BonusGame(TableRNG(seed=1), grid_size=6, land_chance=1.0, multipliers=(5,))
        result = game.play(2)
        self.assertEqual(result.grid, (5,) * 6)
        self.assertEqual(result.multiplier, 30)
        self.assertEqual(result.payout, 60)
        self.assertEqual(len(result.drops), 6)

    def test_no_landing_runs_out_of_spins(self):
        game = BonusGame(TableRNG(seed=1), spins=3, land_chance=0.0)
        result = game.play(50)
        self.assertEqual(result.multiplier, 0)
        self.assertEqual(result.payout, 0)
        self.assertEqual([d.spins_left for d in result.drops], [2, 1, 0])

    def test_landing_resets_spins(self):
        result = BonusGame(TableRNG(seed=5), spins=2, land_chance=0.5).play(1)
        for drop in result.drops:
            if drop.cell is not None:
                self.assertEqual(drop.spins_left, 2)
        self.assertEqual(result.drops[-1].spins_left == 0, None in result.grid)

    def test_spectator_is_not_credited(self):
        game = BonusGame(TableRNG(seed=2), land_chance=1.0, multipliers=(10,))
        result = game.play(10, BonusMode.SPECTATOR)
        self.assertGreater(result.payout, 0)
        self.assertEqual(result.credited, 0)
        self.assertEqual(result.to_dict()["mode"], "SPECTATOR")

    def test_rejects_empty_grid(self):
        with self.assertRaises(ValueError):
            BonusGame(grid_size=0)
        with self.assertRaises(ValueError):
            BonusGame(spins=0)


if __name__ == "__main__":
    unittest.main()
