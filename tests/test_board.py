import unittest

from megafire.core.roulette.board import BettingGrid, number_at


class TestBettingGrid(unittest.TestCase):
    """240 x 520 board: cells are 80 wide and 40 tall."""

    def setUp(self):
        self.grid = BettingGrid(240, 520, edge_slop=0.25)

    def hit(self, x, y, precision=True):
        target = self.grid.resolve(x, y, precision)
        return target.bet_id if target else None

    def test_layout(self):
        self.assertEqual(number_at(0, 0), 0)
        self.assertEqual(number_at(0, 1), 1)
        self.assertEqual(number_at(2, 1), 3)
        self.assertEqual(number_at(2, 12), 36)

    def test_simple_tap_is_always_straight(self):
        self.assertEqual(self.hit(82, 82, precision=False), "5")
        self.assertEqual(self.hit(120, 10, precision=False), "0")
        self.assertEqual(self.hit(239, 519, precision=False), "36")

    def test_outside_the_grid(self):
        self.assertIsNone(self.hit(300, 60))
        self.assertIsNone(self.hit(-1, 60))

    def test_cell_center_stays_straight(self):
        self.assertEqual(self.hit(120, 100), "5")

    def test_edges_give_splits(self):
        self.assertEqual(self.hit(82, 100), "SPLIT_4_5")
        self.assertEqual(self.hit(158, 100), "SPLIT_5_6")
        self.assertEqual(self.hit(120, 82), "SPLIT_2_5")
        self.assertEqual(self.hit(120, 118), "SPLIT_5_8")

    def test_split_is_the_same_from_both_sides(self):
        self.assertEqual(self.hit(78, 100), self.hit(82, 100))
        self.assertEqual(self.hit(120, 78), self.hit(120, 82))

    def test_vertices_give_corners(self):
        self.assertEqual(self.hit(82, 82), "COR_1_2_4_5")
        self.assertEqual(self.hit(78, 78), "COR_1_2_4_5")
        self.assertEqual(self.hit(158, 118), "COR_5_6_8_9")

    def test_left_edge_is_street_and_its_vertex_a_six_line(self):
        self.assertEqual(self.hit(2, 100), "STREET_4_5_6")
        self.assertEqual(self.hit(2, 82), "LINE_1_6")
        self.assertEqual(self.hit(2, 118), "LINE_4_9")

    def test_zero_borders(self):
        self.assertEqual(self.hit(120, 42), "SPLIT_0_2")
        self.assertEqual(self.hit(120, 38), "SPLIT_0_2")
        self.assertEqual(self.hit(82, 42), "STREET_0_1_2")
        self.assertEqual(self.hit(158, 38), "STREET_0_2_3")
        self.assertEqual(self.hit(2, 42), "COR_0_1_2_3")

    def test_last_row_bottom_edge_has_no_neighbor(self):
        self.assertEqual(self.hit(40, 518), "34")

    def test_target_anchor(self):
        target = self.grid.resolve(82, 82, precision=True)
        self.assertEqual((target.x, target.y), (80, 80))
        self.assertEqual(target.kind, "CORNER")
        self.assertEqual(target.numbers, (1, 2, 4, 5))


if __name__ == "__main__":
    unittest.main()
