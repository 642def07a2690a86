import unittest

from return_tools.angles import angular_distance, forward_arc, normalize, signed_separation


class AnglesTest(unittest.TestCase):
    def test_normalize(self) -> None:
        self.assertEqual(normalize(-30.0), 330.0)
        self.assertEqual(normalize(720.0), 0.0)
        self.assertEqual(normalize(359.5), 359.5)
        # Tiny negative values must not come back as 360.
        self.assertEqual(normalize(-1e-17), 0.0)

    def test_signed_separation_range(self) -> None:
        self.assertAlmostEqual(signed_separation(10.0, 350.0), 20.0)
        self.assertAlmostEqual(signed_separation(350.0, 10.0), -20.0)
        self.assertEqual(signed_separation(180.0, 0.0), 180.0)
        self.assertEqual(signed_separation(0.0, 180.0), 180.0)

    def test_angular_distance(self) -> None:
        self.assertAlmostEqual(angular_distance(359.0, 1.0), 2.0)
        self.assertAlmostEqual(angular_distance(1.0, 359.0), 2.0)
        self.assertEqual(angular_distance(0.0, 180.0), 180.0)
        self.assertEqual(angular_distance(42.0, 42.0), 0.0)

    def test_forward_arc(self) -> None:
        self.assertAlmostEqual(forward_arc(350.0, 10.0), 20.0)
        self.assertAlmostEqual(forward_arc(10.0, 350.0), 340.0)
        self.assertEqual(forward_arc(90.0, 90.0), 0.0)


if __name__ == "__main__":
    unittest.main()
