"""Tests for ranking and project statistics"""
import pytest

from tokenslim.errors import CandidateListError
from tokenslim.metrics import efficiency_grade, pct

from conftest import make_content


class TestRank:
    """Tests for MetricsEngine.rank"""

    def test_empty_input(self, engine):
        """No files is not an error"""
        assert engine.rank([]) == []

    def test_sorted_by_tokens_descending(self, engine, project):
        """Heaviest file first"""
        small = project("small.rs", make_content(2, 5))
        big = project("big.rs", make_content(10, 8))
        mid = project("mid.rs", make_content(4, 5))

        ranked = engine.rank([str(small), str(big), str(mid)])

        assert [f.path for f in ranked] == [str(big), str(mid), str(small)]
        assert [f.metrics.token_count for f in ranked] == [80, 20, 10]

    def test_ties_broken_by_path(self, engine, project):
        """Equal token counts are ordered by path"""
        b = project("b.rs", make_content(3, 3))
        a = project("a.rs", make_content(3, 3))
        c = project("c.rs", make_content(1, 9))

        ranked = engine.rank([str(c), str(b), str(a)])

        assert [f.path for f in ranked] == [str(a), str(b), str(c)]

    def test_weight_fractions_sum_to_one(self, engine, project):
        """Fractions are computed over the full input"""
        paths = [str(project(f"f{i}.rs", make_content(i + 1, 3))) for i in range(5)]

        ranked = engine.rank(paths)

        assert sum(f.weight_fraction for f in ranked) == pytest.approx(1.0)
        assert ranked[0].weight_fraction == pytest.approx(15 / 45)

    def test_prefix_keeps_global_fractions(self, engine, project):
        """Taking the top N does not renormalize"""
        paths = [str(project(f"f{i}.rs", make_content(1, 10))) for i in range(4)]

        top = engine.rank(paths)[:2]

        assert [f.weight_fraction for f in top] == [pytest.approx(0.25)] * 2

    def test_all_empty_files(self, engine, project):
        """Zero total tokens gives zero fractions"""
        path = project("empty.rs", b"")

        ranked = engine.rank([str(path)])

        assert ranked[0].weight_fraction == 0.0

    def test_unreadable_file_raises(self, engine, tmp_path):
        """A missing candidate is a candidate list error"""
        with pytest.raises(CandidateListError):
            engine.rank([str(tmp_path / "gone.rs")])

    def test_rank_is_repeatable(self, engine, project):
        """Ranking has no side effects"""
        paths = [str(project("x.rs", make_content(2, 2))), str(project("y.rs", make_content(3, 3)))]
        assert engine.rank(paths) == engine.rank(paths)


class TestScan:
    """Tests for MetricsEngine.scan"""

    def test_totals(self, engine, project):
        project("a.rs", make_content(10, 8))
        project("b.rs", make_content(5, 4))
        project("README.md", make_content(50, 50))

        stats = engine.scan(project.src)

        assert len(stats.files) == 2
        assert stats.total_lines == 15
        assert stats.total_tokens == 100
        assert stats.ratio == pytest.approx(100 / 15)
        assert len(stats.top(1)) == 1

    def test_missing_root(self, engine, tmp_path):
        with pytest.raises(CandidateListError):
            engine.scan(tmp_path / "missing")


class TestEfficiencyGrade:
    """Tests for the tokens-per-line grade"""

    @pytest.mark.parametrize("ratio,expected", [
        (4.0, ("A%2B", "brightgreen", "A+")),
        (5.0, ("A%2B", "brightgreen", "A+")),
        (6.0, ("A", "green", "A")),
        (7.0, ("A", "green", "A")),
        (8.0, ("B", "blue", "B")),
        (9.0, ("B", "blue", "B")),
        (11.0, ("C", "orange", "C")),
        (12.0, ("C", "orange", "C")),
        (13.0, ("D", "red", "D")),
    ])
    def test_grades(self, ratio, expected):
        assert efficiency_grade(ratio) == expected


def test_pct_zero_whole():
    assert pct(5, 0) == 0.0
    assert pct(1, 4) == 25.0
