"""
Tests for Geo Name Normalization
"""
from src.dealflow.transformers.geo_normalizer import GeoNormalizer


class TestGeoNormalizer:
    """Tests for GeoNormalizer."""

    def test_normalize_case_whitespace_and_separators(self):
        normalizer = GeoNormalizer()

        assert normalizer.normalize("  Business-Bay ") == "business bay"
        assert normalizer.normalize("dubai_hills_estate") == "dubai hills estate"
        assert normalizer.normalize(None) == ""
        assert normalizer.normalize("") == ""

    def test_aliases(self):
        normalizer = GeoNormalizer()

        assert normalizer.normalize("JVC") == "jumeirah village circle"
        assert normalizer.normalize("Marina") == "dubai marina"
        assert normalizer.normalize("The Palm") == "palm jumeirah"
        # alias only applies to the whole value
        assert normalizer.normalize("JVC District 12") == "jvc district 12"

    def test_custom_aliases(self):
        normalizer = GeoNormalizer(aliases={"MBR City": "Mohammed Bin Rashid City"})

        assert normalizer.normalize("mbr-city") == "mohammed bin rashid city"

    def test_matches_by_containment_both_ways(self):
        normalizer = GeoNormalizer()

        assert normalizer.matches("Dubai Marina", "Marina")
        assert normalizer.matches("apartment", "Apartments")
        assert normalizer.matches("JVC", "Jumeirah Village Circle")
        assert not normalizer.matches("Business Bay", "Dubai Marina")
        assert not normalizer.matches(None, "Dubai Marina")
        assert not normalizer.matches("", "")

    def test_matches_any(self):
        normalizer = GeoNormalizer()

        assert normalizer.matches_any("Downtown", ["JLT", "Downtown Dubai"])
        assert not normalizer.matches_any("Downtown", [])

    def test_contained_in_is_one_directional(self):
        normalizer = GeoNormalizer()

        assert normalizer.contained_in("Apartment", ["apartment"])
        assert normalizer.contained_in("apartment", ["Apartments", "villa"])
        assert not normalizer.contained_in("apart", ["apartment"])
        assert not normalizer.contained_in(None, ["apartment"])
        assert not normalizer.contained_in("villa", [])
