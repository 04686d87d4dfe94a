import itertools
import unittest
from pathlib import Path

from sequential.resolution.ordering import compare_components, compare_paths, finder_sort, natural_key


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class FinderOrderingTests(unittest.TestCase):
    def test_folder_contents_sort_before_sibling_files(self) -> None:
        root = Path("/Users/alice/Pictures")
        paths = [root / "b.png", root / "2024" / "a.png", root / "a.png"]
        self.assertEqual(
            finder_sort(paths),
            [root / "2024" / "a.png", root / "a.png", root / "b.png"],
        )

    def test_folders_first_even_when_name_sorts_later(self) -> None:
        root = Path("/photos")
        self.assertEqual(
            finder_sort([root / "a.png", root / "zzz" / "b.png"]),
            [root / "zzz" / "b.png", root / "a.png"],
        )

    def test_digit_runs_compare_numerically(self) -> None:
        root = Path("/shots")
        paths = [root / "img10.png", root / "img2.png", root / "img1.png"]
        self.assertEqual(
            [path.name for path in finder_sort(paths)],
            ["img1.png", "img2.png", "img10.png"],
        )

    def test_case_insensitive_with_stable_tiebreak(self) -> None:
        self.assertLess(compare_components("apple", "Banana"), 0)
        self.assertNotEqual(compare_components("A.png", "a.png"), 0)
        self.assertEqual(natural_key("A.png"), natural_key("a.png"))

    def test_prefix_path_sorts_first(self) -> None:
        self.assertLess(compare_paths("/a", "/a/b"), 0)
        self.assertGreater(compare_paths("/a/b", "/a"), 0)
        self.assertEqual(compare_paths("/a/b", "/a/b"), 0)

    def test_comparator_is_a_strict_order_over_siblings(self) -> None:
        root = Path("/set")
        paths = [
            root / "1.png",
            root / "01.png",
            root / "10.png",
            root / "a.png",
            root / "A.png",
            root / "b" / "x.png",
            root / "B" / "y.png",
            root / "b" / "c" / "z.png",
            root / "é.png",
        ]
        for a, b in itertools.permutations(paths, 2):
            self.assertEqual(_sign(compare_paths(a, b)), -_sign(compare_paths(b, a)), (a, b))
            self.assertNotEqual(compare_paths(a, b), 0, (a, b))
        for a, b, c in itertools.permutations(paths, 3):
            if compare_paths(a, b) < 0 and compare_paths(b, c) < 0:
                self.assertLess(compare_paths(a, c), 0, (a, b, c))

    def test_sort_is_independent_of_input_order(self) -> None:
        root = Path("/set")
        paths = [root / "b.png", root / "a" / "1.png", root / "a" / "10.png", root / "a" / "2.png", root / "c.png"]
        expected = finder_sort(paths)
        self.assertEqual(finder_sort(reversed(paths)), expected)
        self.assertEqual(
            expected,
            [root / "a" / "1.png", root / "a" / "2.png", root / "a" / "10.png", root / "b.png", root / "c.png"],
        )


if __name__ == "__main__":
    unittest.main()
