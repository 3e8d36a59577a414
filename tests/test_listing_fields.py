"""
Tests for derived listing fields
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.utils.listing_fields import format_price, generate_tags, listing_age


class TestGenerateTags:

    def test_brand_model_location(self):
        assert generate_tags("Kirloskar", "KG1-62.5AS", "Mumbai, Maharashtra") == [
            "kirloskar",
            "kg1-62.5as",
            "mumbai",
            "maharashtra",
        ]

    def test_short_words_dropped(self):
        assert generate_tags("JCB", "G 15 QX", "Navi Mumbai") == ["jcb", "navi", "mumbai"]

    def test_duplicates_removed(self):
        assert generate_tags("Cummins", "Cummins C25D5", "Pune") == ["cummins", "c25d5", "pune"]

    def test_missing_sources(self):
        assert generate_tags(None, "", None) == []


class TestFormatPrice:

    @pytest.mark.parametrize(
        "price,expected",
        [
            (500, "₹500"),
            (65000, "₹65,000"),
            (850000, "₹8,50,000"),
            (12500000, "₹1,25,00,000"),
            (1250000.5, "₹12,50,000.5"),
            (5.999, "₹6"),
        ],
    )
    def test_indian_grouping(self, price, expected):
        assert format_price(price) == expected


class TestListingAge:

    @pytest.fixture
    def now(self):
        return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_one_day(self, now):
        assert listing_age(now - timedelta(hours=5), now) == "1 day ago"

    def test_days(self, now):
        assert listing_age(now - timedelta(days=3), now) == "3 days ago"

    def test_weeks(self, now):
        assert listing_age(now - timedelta(days=15), now) == "2 weeks ago"

    def test_months(self, now):
        assert listing_age(now - timedelta(days=65), now) == "2 months ago"

    def test_naive_timestamp_treated_as_utc(self, now):
        created = datetime(2024, 5, 29, 12, 0)
        assert listing_age(created, now) == "3 days ago"
