import random
import unittest

import chess

from lichess_board_simple.sides import resolve_side, side_name


class SideTests(unittest.TestCase):
    def test_explicit(self):
        self.assertEqual(resolve_side("white"), chess.WHITE)
        self.assertEqual(resolve_side("Black"), chess.BLACK)

    def test_random_uses_coin(self):
        seen = {resolve_side("random", random.Random(seed)) for seed in range(32)}
        self.assertEqual(seen, {chess.WHITE, chess.BLACK})

    def test_rejects_unknown(self):
        with self.assertRaises(ValueError):
            resolve_side("green")

    def test_side_name(self):
        self.assertEqual(side_name(chess.WHITE), "white")
        self.assertEqual(side_name(chess.BLACK), "black")


if __name__ == "__main__":
    unittest.main()
