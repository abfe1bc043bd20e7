import unittest

from megafire.config import AppConfig
from megafire.core.exceptions import InvalidBetError
from megafire.core.roulette.bets import (
    Corner,
    Line,
    Outside,
    OutsideKind,
    Split,
    Straight,
    Street,
    Unknown,
    canonical_bet_id,
    classify,
    interpret_bet_id,
    make_bet_id,
    parse_bet_id,
)
from megafire.core.roulette.rules import DEFAULT_PAYOUTS, Paytable, get_column, get_dozen


class TestBetParsing(unittest.TestCase):
    def test_straight(self):
        self.assertEqual(parse_bet_id("0"), Straight(0))
        self.assertEqual(parse_bet_id("36"), Straight(36))

    def test_split_is_canonical(self):
        self.assertEqual(make_bet_id("SPLIT", [5, 2]), make_bet_id("SPLIT", [2, 5]))
        self.assertEqual(canonical_bet_id("SPLIT_5_2"), "SPLIT_2_5")
        self.assertEqual(parse_bet_id("SPLIT_5_2"), parse_bet_id("SPLIT_2_5"))

    def test_corner(self):
        bet = parse_bet_id("COR_5_4_1_2")
        self.assertEqual(bet, Corner((1, 2, 4, 5)))
        self.assertEqual(bet.bet_id, "COR_1_2_4_5")
        self.assertEqual(bet.coverage, 4)

    def test_street_explicit_and_range(self):
        self.assertEqual(parse_bet_id("STREET_4_5_6"), Street((4, 5, 6)))
        ranged = parse_bet_id("STREET_4_6")
        self.assertEqual(ranged.numbers, frozenset({4, 5, 6}))
        self.assertEqual(ranged.coverage, 3)
        # Zero trios are streets too
        self.assertEqual(parse_bet_id("STREET_0_2_3").numbers, frozenset({0, 2, 3}))

    def test_line(self):
        bet = parse_bet_id("LINE_13_18")
        self.assertEqual(bet, Line(13, 18))
        self.assertEqual(bet.numbers, frozenset(range(13, 19)))
        self.assertEqual(bet.coverage, 6)

    def test_outside_names(self):
        self.assertEqual(parse_bet_id("RED"), Outside(OutsideKind.RED))
        self.assertEqual(parse_bet_id("1-18").family, "EVEN_CHANCE")
        self.assertEqual(parse_bet_id("COL2").family, "COLUMN")
        self.assertEqual(parse_bet_id("3rd12").family, "DOZEN")
        self.assertFalse(parse_bet_id("EVEN").is_inside)

    def test_malformed_ids_raise(self):
        for bad in ["", "37", "SPLIT_1", "SPLIT_1_1", "COR_1_2_3", "STREET_1_5",
                    "LINE_1_4", "COL4", "4th12", "PURPLE", "SPLIT_a_b"]:
            with self.subTest(bet_id=bad):
                with self.assertRaises(InvalidBetError):
                    parse_bet_id(bad)

    def test_shapes_must_sit_on_the_layout(self):
        for bad in ["SPLIT_1_36", "SPLIT_3_4", "SPLIT_0_4", "COR_1_2_3_4", "COR_3_4_6_7",
                    "STREET_2_4", "STREET_5_17_30", "STREET_0_1_3", "LINE_2_7", "LINE_34_39"]:
            with self.subTest(bet_id=bad):
                with self.assertRaises(InvalidBetError):
                    parse_bet_id(bad)
                self.assertIsInstance(interpret_bet_id(bad), Unknown)

    def test_zero_shapes_and_edges_are_accepted(self):
        for good in ["SPLIT_0_1", "SPLIT_0_3", "SPLIT_33_36", "SPLIT_35_36", "COR_0_1_2_3",
                     "COR_32_33_35_36", "STREET_0_1_2", "STREET_0_2", "STREET_34_35_36",
                     "LINE_31_36"]:
            with self.subTest(bet_id=good):
                self.assertNotIsInstance(parse_bet_id(good), Unknown)

    def test_lenient_parse_yields_unknown(self):
        self.assertEqual(interpret_bet_id("PURPLE"), Unknown("PURPLE"))
        self.assertEqual(interpret_bet_id("17"), Straight(17))

    def test_split_variant_normalizes(self):
        self.assertEqual(Split.of(9, 6), Split(6, 9))


class TestClassify(unittest.TestCase):
    def test_straight_pays_29_for_every_number(self):
        for number in range(37):
            verdict = classify(str(number), number)
            self.assertTrue(verdict.won)
            self.assertEqual(verdict.payout(100), 100 * 29 + 100)

    def test_straight_payout_is_configurable(self):
        verdict = classify("7", 7, Paytable({"STRAIGHT": 35}))
        self.assertEqual(verdict.payout(10), 360)

    def test_inside_families(self):
        cases = [
            ("SPLIT_1_2", 2, 17, 2),
            ("STREET_1_2_3", 3, 11, 3),
            ("COR_1_2_4_5", 4, 8, 4),
            ("LINE_1_6", 6, 5, 6),
        ]
        for bet_id, winner, multiplier, coverage in cases:
            with self.subTest(bet_id=bet_id):
                verdict = classify(bet_id, winner)
                self.assertTrue(verdict.won)
                self.assertTrue(verdict.is_inside)
                self.assertEqual(verdict.multiplier, multiplier)
                self.assertEqual(verdict.coverage, coverage)
                self.assertFalse(classify(bet_id, 36).won)

    def test_even_chances(self):
        self.assertTrue(classify("RED", 3).won)
        self.assertFalse(classify("RED", 2).won)
        self.assertTrue(classify("BLACK", 2).won)
        self.assertTrue(classify("EVEN", 36).won)
        self.assertTrue(classify("ODD", 35).won)
        self.assertTrue(classify("1-18", 18).won)
        self.assertTrue(classify("19-36", 19).won)
        self.assertEqual(classify("RED", 3).payout(50), 100)

    def test_zero_loses_every_outside_bet(self):
        for bet_id in ["RED", "BLACK", "EVEN", "ODD", "1-18", "19-36",
                       "COL1", "COL2", "COL3", "1st12", "2nd12", "3rd12"]:
            with self.subTest(bet_id=bet_id):
                self.assertFalse(classify(bet_id, 0).won)

    def test_columns_and_dozens_match_layout(self):
        for number in range(1, 37):
            self.assertTrue(classify(get_column(number), number).won)
            self.assertTrue(classify(get_dozen(number), number).won)
        self.assertEqual(classify("COL1", 1).multiplier, 2)
        self.assertEqual(classify("2nd12", 13).multiplier, 2)

    def test_configured_payouts_default_to_the_rules_table(self):
        config = AppConfig()
        self.assertEqual(config.table.payouts, DEFAULT_PAYOUTS)
        config.table.payouts["STRAIGHT"] = 35
        self.assertEqual(DEFAULT_PAYOUTS["STRAIGHT"], 29)
        self.assertEqual(AppConfig().table.payouts["STRAIGHT"], 29)

    def test_unknown_never_wins_nor_raises(self):
        verdict = classify("NOT_A_BET", 5)
        self.assertFalse(verdict.won)
        self.assertEqual(verdict.payout(100), 0)


if __name__ == "__main__":
    unittest.main()
