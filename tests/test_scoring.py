"""Fallback relevance scoring tests."""

from collections.abc import Callable

import pytest

from collector.figures import CompanyRole, Figure
from collector.search import compute_score

MakeFigure = Callable[..., Figure]


class TestComputeScore:
    """Tests for compute_score weight table."""

    def test_empty_query_scores_zero(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Hatsune Miku", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, "") == 0
        assert compute_score(figure, "   ") == 0

    def test_exact_scale_match_scores_two(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test Figure", manufacturer="Test", scale="1/8")
        assert compute_score(figure, "1/8") == 2.0

    def test_scale_must_match_exactly(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test Figure", manufacturer="Test", scale="1/8")
        assert compute_score(figure, "1/") == 0

    def test_hatsune_miku_scale_query(self, make_figure: MakeFigure) -> None:
        """Only the scale rule fires: "1/8" is not part of the name."""
        figure = make_figure("Hatsune Miku", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, "1/8") == 2.0

    def test_name_prefix_scores_one_and_a_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Hatsune Miku", manufacturer="GSC", scale="1/8")
        assert compute_score(figure, "hatsune") == 1.5

    def test_name_word_boundary_scores_one_and_a_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Hatsune Miku", manufacturer="GSC", scale="1/8")
        assert compute_score(figure, "miku") == 1.5

    def test_name_substring_scores_one(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Mikasa Ackerman", manufacturer="Alter", scale="1/7")
        assert compute_score(figure, "kasa") == 1.0

    def test_manufacturer_prefix_scores_one_and_a_quarter(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, "good") == 1.25

    def test_manufacturer_word_boundary(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, "smile") == 1.25

    def test_manufacturer_substring_scores_three_quarters(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", manufacturer="Kotobukiya", scale="1/8")
        assert compute_score(figure, "buki") == 0.75

    def test_manufacturer_derived_from_company_roles(self, make_figure: MakeFigure) -> None:
        figure = make_figure(
            "Test",
            company_roles=[
                CompanyRole(company_name="Max Factory", role_name="Distributor"),
                CompanyRole(company_name="Alter", role_name="Manufacturer"),
            ],
        )
        assert compute_score(figure, "alter") == 1.25
        assert compute_score(figure, "factory") == 0

    def test_legacy_location_scores_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", location="Shelf A")
        assert compute_score(figure, "shelf") == 0.5

    def test_location_tag_scores_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", tags=["location:room-3"])
        assert compute_score(figure, "room") == 0.5

    def test_legacy_box_number_scores_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", box_number="Box 001")
        assert compute_score(figure, "001") == 0.5

    def test_box_tag_scores_half(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", tags=["box:b-12"])
        assert compute_score(figure, "b-12") == 0.5

    def test_location_and_box_bonuses_stack(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", location="attic", storage_detail="attic crate")
        assert compute_score(figure, "attic") == 1.0

    def test_other_tags_do_not_score(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Test", tags=["bikini", "series:summer"])
        assert compute_score(figure, "bikini") == 0
        assert compute_score(figure, "summer") == 0

    def test_only_name_populated_first_word(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Saber Alter")
        assert compute_score(figure, "Saber") == 1.5

    def test_multi_term_scores_accumulate(self, make_figure: MakeFigure) -> None:
        figure = make_figure("Hatsune Miku", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, "hatsune miku") == 3.0

    def test_rules_combine_within_a_term(self, make_figure: MakeFigure) -> None:
        """A scale match and a name match on the same term both count."""
        figure = make_figure("Miku 1/7 Special", manufacturer="Miku Works", scale="1/7")
        # scale 2.0 + name word boundary 1.5
        assert compute_score(figure, "1/7") == 3.5
        # name prefix 1.5 + manufacturer prefix 1.25
        assert compute_score(figure, "miku") == 2.75

    @pytest.mark.parametrize("query", ["MIKU", "miku", "Miku", "mIkU"])
    def test_case_insensitive(self, make_figure: MakeFigure, query: str) -> None:
        figure = make_figure("Hatsune Miku", manufacturer="Good Smile Company", scale="1/8")
        assert compute_score(figure, query) == compute_score(figure, "miku")

    def test_score_is_rounded_to_two_places(self, make_figure: MakeFigure) -> None:
        figure = make_figure("aaa", manufacturer="aaa", location="aaa", box_number="aaa")
        score = compute_score(figure, "a a a")
        assert score == round(score, 2)
        assert score == 3 * (1.5 + 1.25 + 0.5 + 0.5)
