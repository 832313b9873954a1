"""Tests for guessing and overriding the mark and quantity columns."""

import pytest

from marklist.roles import ColumnRoles, UnresolvableColumnRole, guess_column_roles


class TestGuessColumnRoles:
    def test_keyword_matches(self) -> None:
        roles = guess_column_roles(["Pos", "Component", "Profile", "Pcs", "Weight"])

        assert roles.mark_key == "Component"
        assert roles.qty_key == "Pcs"
        assert roles.mark_confidence == 1.0
        assert roles.qty_confidence == 1.0
        assert roles.resolved

    @pytest.mark.parametrize(
        "header, role",
        [
            ("Mark", "mark"),
            ("Item No", "mark"),
            ("Part", "mark"),
            ("Komponent", "mark"),
            ("Qty", "qty"),
            ("Amount", "qty"),
            ("Count", "qty"),
            ("Kogus", "qty"),
        ],
    )
    def test_keywords_case_insensitive(self, header: str, role: str) -> None:
        roles = guess_column_roles(["Other", header, "Last"])
        key = roles.mark_key if role == "mark" else roles.qty_key

        assert key == header

    def test_first_matching_header_wins(self) -> None:
        roles = guess_column_roles(["Assembly Mark", "Part", "Qty", "Pcs"])

        assert roles.mark_key == "Assembly Mark"
        assert roles.qty_key == "Qty"

    def test_positional_fallback(self) -> None:
        """Without keywords the first column is the mark and the last the quantity."""
        roles = guess_column_roles(["Col1", "Col2", "Col3"])

        assert roles.mark_key == "Col1"
        assert roles.qty_key == "Col3"
        assert roles.mark_confidence == 0.5
        assert roles.qty_confidence == 0.5

    def test_keyword_must_be_a_whole_word(self) -> None:
        roles = guess_column_roles(["Marking", "Partial", "Total"])

        assert roles.mark_confidence == 0.5
        assert roles.mark_key == "Marking"

    def test_no_headers_is_unresolved(self) -> None:
        roles = guess_column_roles([])

        assert roles.mark_key is None
        assert roles.qty_key is None
        assert not roles.resolved


class TestColumnRoles:
    def test_overrides_take_full_confidence(self) -> None:
        roles = guess_column_roles(["A", "B", "C"]).with_overrides(qty_key="B")

        assert roles.mark_key == "A"
        assert roles.qty_key == "B"
        assert roles.qty_confidence == 1.0
        assert roles.mark_confidence == 0.5

    def test_renamed_follows_column(self) -> None:
        roles = ColumnRoles(mark_key="Mark", qty_key="Qty").renamed("Qty", "Pcs")

        assert roles.qty_key == "Pcs"
        assert roles.mark_key == "Mark"

    def test_without_clears_role(self) -> None:
        roles = ColumnRoles(mark_key="Mark", qty_key="Qty", qty_confidence=1.0).without("Qty")

        assert roles.qty_key is None
        assert roles.qty_confidence == 0.0
        assert not roles.resolved

    def test_require_returns_keys(self) -> None:
        assert ColumnRoles(mark_key="Mark", qty_key="Qty").require(["Mark", "Qty"]) == ("Mark", "Qty")

    def test_require_missing_role(self) -> None:
        with pytest.raises(UnresolvableColumnRole) as exc:
            ColumnRoles(mark_key="Mark").require()

        assert exc.value.role == "quantity"

    def test_require_unknown_column(self) -> None:
        with pytest.raises(UnresolvableColumnRole, match="not one of the table headers"):
            ColumnRoles(mark_key="Mark", qty_key="Qty").require(["Mark", "Pcs"])

    def test_unresolvable_is_a_value_error(self) -> None:
        assert issubclass(UnresolvableColumnRole, ValueError)
