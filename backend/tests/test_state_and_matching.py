"""Tests for locating offers in the client state and reconciling products."""

import pytest

from itemshop.scrapers.base import CatalogEntry, OfferMatch, OfferStatus, ScrapedProduct
from itemshop.scrapers.matcher import find_entry, reconcile
from itemshop.scrapers.state_locator import find_root_offer_id, locate_catalog_entries


def _nest(node, depth: int):
    """Place node depth levels below the root."""
    for _ in range(depth):
        node = {"child": node}
    return node


def _product(name="Cool Skin", price=1500, **kwargs) -> ScrapedProduct:
    return ScrapedProduct(
        name=name,
        type_label=kwargs.pop("type_label", "Traje"),
        current_price=price,
        detail_url=kwargs.pop("detail_url", "https://www.fortnite.com/es-ES/item-shop/cool-skin"),
        **kwargs,
    )


# ============================================================================
# TESTS: STATE LOCATOR
# ============================================================================

class TestLocateCatalogEntries:
    """Tests for the depth-first offer walk."""

    def test_finds_entries_in_traversal_order(self, make_state, make_entry):
        state = make_state(
            make_entry("X1", "Cool Skin", 1500),
            make_entry("X2", "Glider", 800),
        )
        entries = locate_catalog_entries(state)

        assert [e.offer_id for e in entries] == ["X1", "X2"]
        assert entries[0].title == "Cool Skin"
        assert entries[0].price == 1500

    def test_nested_entries_inside_an_entry(self, make_entry):
        bundle = make_entry("B1", "Bundle", 2800, items=[make_entry("I1", "Part", 0)])
        entries = locate_catalog_entries({"offers": [bundle]})

        assert [e.offer_id for e in entries] == ["B1", "I1"]

    def test_requires_offer_id_and_title(self):
        state = {"a": {"offerId": "X1"}, "b": {"title": "Lonely"}, "c": {"offerId": "", "title": "Empty"}}
        assert locate_catalog_entries(state) == []

    def test_final_price_preferred(self, make_entry):
        entry = make_entry("X1", "Cool Skin", 1500, pricing={"finalPrice": 1200})
        assert locate_catalog_entries([entry])[0].price == 1200

    def test_zero_final_price_falls_back_to_flat_price(self, make_entry):
        entry = make_entry("X1", "Cool Skin", 1500, pricing={"finalPrice": 0})
        assert locate_catalog_entries([entry])[0].price == 1500

    def test_optional_fields(self, make_entry):
        entry = make_entry(
            "X1",
            "Traje genial",
            1500,
            englishTitle="Cool Skin",
            urlName="cool-skin",
            assetType="outfit",
            originalPrice=2000,
            discount="-500",
            color1="#ff0000",
            color3="",
        )
        located = locate_catalog_entries([entry])[0]

        assert located.english_title == "Cool Skin"
        assert located.url_name == "cool-skin"
        assert located.asset_type == "outfit"
        assert located.original_price == 2000
        assert located.discount == "-500"
        assert located.colors == ("#ff0000", None, None)

    def test_depth_cap(self, make_entry):
        at_limit = _nest(make_entry("DEEP", "Deep", 100), 10)
        past_limit = _nest(make_entry("TOO-DEEP", "Too deep", 100), 11)

        assert [e.offer_id for e in locate_catalog_entries(at_limit)] == ["DEEP"]
        assert locate_catalog_entries(past_limit) == []

    def test_custom_depth(self, make_entry):
        state = _nest(make_entry("X1", "Cool Skin", 1500), 3)
        assert locate_catalog_entries(state, max_depth=2) == []

    def test_cycle_terminates(self, make_entry):
        node = make_entry("X1", "Cool Skin", 1500)
        node["self"] = node
        node["list"] = [node]

        assert [e.offer_id for e in locate_catalog_entries(node)] == ["X1"]

    def test_shared_reference_visited_each_time(self, make_entry):
        shared = make_entry("X1", "Cool Skin", 1500)
        assert len(locate_catalog_entries({"a": shared, "b": [shared]})) == 2

    @pytest.mark.parametrize("state", [None, "text", 42, True, []])
    def test_scalars_yield_nothing(self, state):
        assert locate_catalog_entries(state) == []

    def test_non_integral_prices_are_dropped(self, make_entry):
        entries = locate_catalog_entries(
            [
                make_entry("S", "String price", "1500"),
                make_entry("F", "Float price", 800.0),
                make_entry("B", "Bool price", True),
                make_entry("H", "Half price", 99.5),
            ]
        )
        assert [e.price for e in entries] == [None, 800, None, None]


class TestFindRootOfferId:
    def test_first_offer_id(self, make_state, make_entry):
        state = make_state(make_entry("X1", "Cool Skin"), make_entry("X2", "Glider"))
        assert find_root_offer_id(state) == "X1"

    def test_offer_id_without_title_counts(self):
        assert find_root_offer_id({"page": {"offerId": "ROOT"}}) == "ROOT"

    def test_non_string_ignored(self):
        assert find_root_offer_id({"a": {"offerId": 7}, "b": {"offerId": "X"}}) == "X"

    def test_missing(self):
        assert find_root_offer_id({"a": [1, 2, {"b": None}]}) is None
        assert find_root_offer_id(None) is None


# ============================================================================
# TESTS: RECONCILIATION
# ============================================================================

class TestReconcile:
    """Tests for matching HTML products to state entries."""

    def test_exact_title_and_price(self):
        entries = [CatalogEntry("X1", "Cool Skin", price=1500)]
        enriched = reconcile(_product(), entries)

        assert enriched.offer == OfferMatch.matched("X1")
        assert enriched.canonical_title == "Cool Skin"
        assert enriched.url_name == ""
        assert enriched.asset_type == "unknown"

    def test_english_title_match(self):
        entries = [
            CatalogEntry(
                "X1", "Traje genial", english_title="Cool Skin", url_name="cool-skin",
                asset_type="outfit", price=1500, colors=("red", "blue", None),
            )
        ]
        enriched = reconcile(_product(), entries)

        assert enriched.offer.valid_offer_id == "X1"
        assert enriched.canonical_title == "Cool Skin"
        assert enriched.url_name == "cool-skin"
        assert enriched.asset_type == "outfit"
        assert enriched.colors == ("red", "blue", None)

    def test_canonical_title_prefers_english_title(self):
        entries = [CatalogEntry("X1", "Cool Skin", english_title="Cool Skin EN", price=1500)]
        assert reconcile(_product(), entries).canonical_title == "Cool Skin EN"

    def test_price_mismatch_blocks_match(self):
        entries = [CatalogEntry("X1", "Cool Skin", price=1200)]
        enriched = reconcile(_product(), entries)

        assert enriched.offer.status is OfferStatus.UNMATCHED
        assert enriched.offer.valid_offer_id is None
        assert enriched.canonical_title == "Cool Skin"

    def test_missing_entry_price_blocks_match(self):
        entries = [CatalogEntry("X1", "Cool Skin")]
        assert reconcile(_product(), entries).offer.status is OfferStatus.UNMATCHED

    def test_loose_match_ignores_case_and_whitespace(self):
        entries = [CatalogEntry("X1", "COOL  SKIN", price=1500)]
        assert reconcile(_product(name="cool skin"), entries).offer.valid_offer_id == "X1"

    def test_exact_pass_beats_earlier_loose_candidate(self):
        entries = [
            CatalogEntry("LOOSE", "coolskin", price=1500),
            CatalogEntry("EXACT", "Cool Skin", price=1500),
        ]
        assert find_entry(_product(), entries).offer_id == "EXACT"

    def test_first_exact_match_wins(self):
        entries = [
            CatalogEntry("FIRST", "Cool Skin", price=1500),
            CatalogEntry("SECOND", "Cool Skin", price=1500),
        ]
        assert find_entry(_product(), entries).offer_id == "FIRST"

    def test_no_entries(self):
        enriched = reconcile(_product(), [])

        assert enriched.offer == OfferMatch.unmatched()
        assert enriched.colors == (None, None, None)


class TestOfferMatch:
    def test_matched_requires_id(self):
        with pytest.raises(ValueError):
            OfferMatch.matched("")

    def test_duplicate_hides_id(self):
        offer = OfferMatch.duplicate_of("X1")

        assert offer.status is OfferStatus.DUPLICATE
        assert offer.offer_id == "X1"
        assert offer.valid_offer_id is None
