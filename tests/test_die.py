import random
import unittest

from nontransitive_dice import Die


class TestDie(unittest.TestCase):
    def test_roll_returns_a_stored_face(self):
        die = Die([2, 2, 4, 4, 9, 9])
        for _ in range(200):
            self.assertIn(die.roll(), die.faces)

    def test_roll_with_seeded_rng_is_repeatable(self):
        die = Die([6, 8, 1, 1, 8, 6])
        first = [die.roll(random.Random(7)) for _ in range(5)]
        second = [die.roll(random.Random(7)) for _ in range(5)]
        self.assertEqual(first, second)

    def test_repeated_face_is_rolled_more_often(self):
        die = Die([1, 1, 1, 1, 1, 2])
        rng = random.Random(3)
        ones = sum(1 for _ in range(600) if die.roll(rng) == 1)
        self.assertGreater(ones, 400)

    def test_wrong_face_count(self):
        with self.assertRaises(ValueError):
            Die([1, 2, 3])

    def test_faces_are_immutable(self):
        faces = [1, 2, 3, 4, 5, 6]
        die = Die(faces)
        faces[0] = 99
        self.assertEqual(die.faces[0], 1)
        self.assertIsInstance(die.faces, tuple)


if __name__ == '__main__':
    unittest.main()
