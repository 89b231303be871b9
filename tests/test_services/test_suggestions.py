"""
Tests for empty-result suggestions.
"""
from types import MappingProxyType

import pytest

from aws_catalog.services.suggestions import (
    DEFAULT_SYNONYMS,
    NO_RESULTS_MESSAGE,
    build_suggestions,
    generate_alternative_search_terms,
)


class TestAlternativeSearchTerms:
    """Tests for generate_alternative_search_terms."""

    def test_forward_lookup(self):
        """An abbreviation yields its synonyms."""
        terms = generate_alternative_search_terms("ec2")

        assert terms[:3] == ["elastic compute cloud", "compute", "virtual machine"]
        assert terms == ["elastic compute cloud", "compute", "virtual machine", "vm"]

    def test_lookup_is_case_insensitive(self):
        """Queries are lower-cased and trimmed before lookup."""
        assert generate_alternative_search_terms("  EC2 ") == generate_alternative_search_terms("ec2")

    def test_reverse_lookup(self):
        """A synonym yields its abbreviation and the other synonyms."""
        assert generate_alternative_search_terms("dns") == ["route53", "domain name system"]

    def test_reverse_lookup_by_containment(self):
        """Queries containing a synonym also match it."""
        terms = generate_alternative_search_terms("cheap storage")

        assert terms[0] == "s3"
        assert "simple storage service" in terms
        assert "bucket" in terms

    def test_deduplicated_and_capped(self):
        """Shared synonyms appear once and at most five terms are returned."""
        terms = generate_alternative_search_terms("compute")

        assert len(terms) <= 5
        assert len(terms) == len(set(terms))
        assert terms[:2] == ["ec2", "elastic compute cloud"]

    def test_unknown_query(self):
        """Unrelated queries produce no alternatives."""
        assert generate_alternative_search_terms("kinesis") == []

    def test_custom_synonym_table(self):
        """An injected table replaces the default one."""
        table = MappingProxyType({"sqs": ("queue", "simple queue service")})

        assert generate_alternative_search_terms("sqs", table) == ["queue", "simple queue service"]
        assert generate_alternative_search_terms("ec2", table) == []

    def test_default_table_is_read_only(self):
        """The default synonym table cannot be modified."""
        with pytest.raises(TypeError):
            DEFAULT_SYNONYMS["ec2"] = ("changed",)


class TestBuildSuggestions:
    """Tests for build_suggestions."""

    def test_popular_services_by_memo_count(self, test_session, catalog):
        """Popular services are ordered by memo count and carry counts."""
        suggestions = build_suggestions(test_session, "ec2")

        assert suggestions["message"] == NO_RESULTS_MESSAGE
        popular = suggestions["popularServices"]
        assert len(popular) == 5
        assert popular[0]["name"] == "Amazon EC2"
        assert popular[0]["memoCount"] == 3
        assert popular[0]["relationCount"] == 1
        assert popular[0]["category"] == {
            "id": catalog["categories"]["compute"].id,
            "name": "Compute",
            "color": "#FF6B6B",
        }
        assert {p["name"] for p in popular[1:3]} == {"Amazon S3", "Amazon RDS"}

    def test_empty_catalog(self, test_session):
        """Without services there are no popular services."""
        suggestions = build_suggestions(test_session, "anything")

        assert suggestions["popularServices"] == []
        assert suggestions["alternativeSearchTerms"] == []
