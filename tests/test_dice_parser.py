import unittest

from nontransitive_dice import ConfigurationError, DiceParser, Die, GameSettings


class TestDiceParser(unittest.TestCase):
    """
    Configuration tokens from the command line:
      - three or more tokens of six integers are accepted as dice,
      - fewer than three tokens or a token without exactly six integers is rejected,
      - the error text names the broken rule and carries a usage example.
    """

    def test_accepts_three_valid_dice(self):
        dice = DiceParser.parse(["2,2,4,4,9,9", "6,8,1,1,8,6", "7,5,3,7,5,3"])
        self.assertEqual(len(dice), 3)
        self.assertEqual(dice[1], Die([6, 8, 1, 1, 8, 6]))
        self.assertEqual(str(dice[2]), "7,5,3,7,5,3")

    def test_rejects_two_dice(self):
        with self.assertRaises(ConfigurationError) as ctx:
            DiceParser.parse(["2,2,4,4,9,9", "6,8,1,1,8,6"])
        self.assertIn("at least 3", ctx.exception.message)
        self.assertIn("Example usage", str(ctx.exception))

    def test_rejects_five_values(self):
        with self.assertRaises(ConfigurationError) as ctx:
            DiceParser.parse(["1,2,3,4,5", "6,8,1,1,8,6", "7,5,3,7,5,3"])
        self.assertIn("1,2,3,4,5", ctx.exception.message)
        self.assertIn("exactly 6 integers", ctx.exception.message)

    def test_rejects_non_integer_face(self):
        with self.assertRaises(ConfigurationError) as ctx:
            DiceParser.parse(["1,2,3,4,5,a", "6,8,1,1,8,6", "7,5,3,7,5,3"])
        self.assertIn("1,2,3,4,5,a", ctx.exception.message)

    def test_rejects_empty_entry(self):
        with self.assertRaises(ConfigurationError):
            DiceParser.parse(["1,2,,4,5,6", "6,8,1,1,8,6", "7,5,3,7,5,3"])

    def test_accepts_negative_faces_and_spaces(self):
        dice = DiceParser.parse(["-1, 0,2,2,-5,9", "6,8,1,1,8,6", "7,5,3,7,5,3", "1,1,1,1,1,1"])
        self.assertEqual(dice[0].faces, (-1, 0, 2, 2, -5, 9))
        self.assertEqual(len(dice), 4)

    def test_minimum_follows_settings(self):
        settings = GameSettings(min_dice=4)
        with self.assertRaises(ConfigurationError) as ctx:
            DiceParser.parse(["2,2,4,4,9,9", "6,8,1,1,8,6", "7,5,3,7,5,3"], settings)
        self.assertIn("at least 4", ctx.exception.message)


if __name__ == '__main__':
    unittest.main()
