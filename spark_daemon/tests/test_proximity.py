"""Tests for ProximityCalculator."""

import pytest

from spark_daemon.context import ProximityCalculator


@pytest.fixture
def calc():
    return ProximityCalculator()


class TestDistance:
    def test_same_directory(self, calc):
        assert calc.calculate_distance("/vault/notes/a.md", "/vault/notes/b.md") == 0

    def test_sibling_directories(self, calc):
        assert calc.calculate_distance("/vault/a/x.md", "/vault/b/y.md") == 2

    def test_child_and_parent(self, calc):
        assert calc.calculate_distance("/vault/a.md", "/vault/notes/b.md") == 1
        assert calc.calculate_distance("/vault/notes/deep/c.md", "/vault/a.md") == 2

    def test_symmetric(self, calc):
        a, b = "/vault/x/y/a.md", "/vault/z/b.md"
        assert calc.calculate_distance(a, b) == calc.calculate_distance(b, a) == 3


class TestRanking:
    def test_closest_first_ties_by_path(self, calc):
        current = "/vault/notes/today.md"
        files = [
            "/vault/archive/old.md",
            "/vault/notes/z.md",
            "/vault/notes/a.md",
            "/vault/root.md",
            current,
        ]
        assert calc.rank_files_by_proximity(current, files) == [
            "/vault/notes/a.md",
            "/vault/notes/z.md",
            "/vault/root.md",
            "/vault/archive/old.md",
        ]

    def test_within_distance(self, calc):
        current = "/vault/notes/today.md"
        files = ["/vault/notes/a.md", "/vault/root.md", "/vault/archive/old.md"]
        assert calc.get_files_within_distance(current, files, 1) == ["/vault/notes/a.md", "/vault/root.md"]
        assert calc.get_files_within_distance(current, files, 0) == ["/vault/notes/a.md"]

    def test_group_by_distance(self, calc):
        current = "/vault/notes/today.md"
        files = ["/vault/notes/a.md", "/vault/root.md", "/vault/archive/old.md", current]
        assert calc.group_files_by_distance(current, files) == {
            0: ["/vault/notes/a.md"],
            1: ["/vault/root.md"],
            2: ["/vault/archive/old.md"],
        }
