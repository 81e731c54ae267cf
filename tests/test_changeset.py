"""Tests for ChangeSet"""
import pytest

from tokenslim.changeset import ChangeSet

from conftest import make_content


class TestChangeSet:
    """Tests for derived change set values"""

    def test_after_metrics_measured_from_proposal(self, scanner):
        """Both sides are measured with the scanner"""
        cs = ChangeSet.build(scanner, "b.rs", make_content(10, 8), make_content(10, 6), ["inline args"])

        assert cs.before_metrics.token_count == 80
        assert cs.after_metrics.token_count == 60
        assert cs.tokens_saved == 20
        assert cs.percent_saved == pytest.approx(25.0)
        assert cs.descriptions == ("inline args",)

    def test_identical(self, scanner):
        content = make_content(3, 3)
        cs = ChangeSet.build(scanner, "a.rs", content, content)

        assert cs.is_identical
        assert cs.tokens_saved == 0

    def test_negative_savings(self, scanner):
        """A longer proposal has negative savings"""
        cs = ChangeSet.build(scanner, "a.rs", make_content(1, 2), make_content(1, 5))
        assert cs.tokens_saved == -3

    def test_diff(self, scanner):
        """Unified diff marks removed and added lines"""
        cs = ChangeSet.build(scanner, "src/a.rs", b"let x = 1;\nlet y = 2;\n", b"let x = 1;\nlet y=2;\n")

        diff = cs.diff()

        assert "--- a/src/a.rs" in diff
        assert "+++ b/src/a.rs" in diff
        assert "-let y = 2;" in diff
        assert "+let y=2;" in diff

    def test_diff_without_trailing_newline(self, scanner):
        """Every diff line is newline-terminated"""
        cs = ChangeSet.build(scanner, "a.rs", b"one", b"two")
        assert all(line for line in cs.diff().split("\n")[:-1])
        assert cs.diff().endswith("\n")
