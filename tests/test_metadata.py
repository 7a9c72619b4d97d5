"""Tests for metadata normalization, keywords and meta tags."""

import pytest
import os

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.metadata import (
    extract_keywords, generate_metatags, normalize, slugify, standardize_date,
)
from quire_pkg.errors import DateParseError, MissingFieldError, NormalizationError


class TestStandardizeDate:
    """Test cases for date standardization."""

    @pytest.mark.parametrize('raw, expected', [
        ('20/05/2023', '2023-05-20'),
        ('2023-05-20T15:30:00Z', '2023-05-20'),
        ('2023-05-20T15:30:00.123+02:00', '2023-05-20'),
        ('2023-05-20 08:00:00', '2023-05-20'),
        ('2023-05-20', '2023-05-20'),
        (' 2023-05-20 ', '2023-05-20'),
    ])
    def test_accepted_formats(self, raw, expected):
        """Test every accepted date shape."""
        assert standardize_date(raw) == expected

    @pytest.mark.parametrize('raw', [
        '',
        '2023',
        '2023-5-1',
        'May 20, 2023',
        '2023/05/20',
        '2023-02-29',
        '31/02/2023',
        '2023-05-20T25:00:00Z',
    ])
    def test_rejected_formats(self, raw):
        """Test that anything else is a DateParseError."""
        with pytest.raises(DateParseError):
            standardize_date(raw)

    def test_date_error_is_a_normalization_error(self):
        """Test the error hierarchy."""
        with pytest.raises(NormalizationError):
            standardize_date('nope')


class TestSlugify:
    """Test cases for slug derivation."""

    def test_basic(self):
        assert slugify("Hello World") == "hello-world"

    def test_each_whitespace_character_becomes_a_hyphen(self):
        assert slugify("  Spaces  ") == "--spaces--"
        assert slugify("Tab\tSeparated") == "tab-separated"


class TestNormalize:
    """Test cases for the normalization pipeline."""

    def test_standardizes_and_derives_slug(self):
        """Test the full pipeline on valid metadata."""
        result = normalize({'title': 'Hello World', 'date': '20/05/2023'})
        assert result == {'title': 'Hello World', 'date': '2023-05-20', 'slug': 'hello-world'}

    def test_keeps_existing_slug(self):
        """Test that an explicit slug wins."""
        assert normalize({'title': 'T', 'date': '2024-01-01', 'slug': 'custom'})['slug'] == 'custom'

    def test_missing_title(self):
        """Test that a missing title names the field."""
        with pytest.raises(MissingFieldError) as excinfo:
            normalize({'date': '2024-01-01'})
        assert excinfo.value.field == 'title'

    def test_missing_date(self):
        """Test that a missing date names the field."""
        with pytest.raises(MissingFieldError) as excinfo:
            normalize({'title': 'T'})
        assert excinfo.value.field == 'date'

    def test_blank_title_counts_as_missing(self):
        with pytest.raises(MissingFieldError):
            normalize({'title': '   ', 'date': '2024-01-01'})

    def test_date_is_checked_before_required_fields(self):
        """Test step order: a bad date fails before the missing title is noticed."""
        with pytest.raises(DateParseError):
            normalize({'date': 'yesterday'})

    def test_input_is_not_modified(self):
        """Test that a failed call leaves no partial result behind."""
        metadata = {'title': 'T', 'date': 'bad date'}
        with pytest.raises(DateParseError):
            normalize(metadata)
        assert metadata == {'title': 'T', 'date': 'bad date'}

    def test_idempotent(self):
        """Test that normalizing twice changes nothing."""
        once = normalize({'title': 'Hello World', 'date': '2023-05-20T15:30:00Z', 'tags': 'a'})
        assert normalize(once) == once


class TestKeywordsAndMetaTags:
    """Test cases for keyword extraction and meta tag generation."""

    def test_extract_keywords(self):
        assert extract_keywords({'keywords': ' python, web ,, static '}) == ['python', 'web', 'static']
        assert extract_keywords({}) == []

    def test_meta_tags_are_grouped_and_escaped(self):
        """Test meta tag groups and attribute escaping."""
        tags = generate_metatags({
            'title': 'T',
            'description': 'A "quoted" <text>',
            'twitter_card': 'summary',
            'apple-mobile-web-app-title': 'App',
            'msapplication-TileColor': '#fff',
        })
        assert '<meta name="description" content="A &quot;quoted&quot; &lt;text&gt;">' in tags.primary
        assert '<meta name="og:title" content="T">' in tags.og
        assert '<meta name="twitter:card" content="summary">' in tags.twitter
        assert '<meta name="apple-mobile-web-app-title" content="App">' in tags.apple
        assert '<meta name="msapplication-TileColor" content="#fff">' in tags.ms

    def test_empty_fields_produce_no_tags(self):
        tags = generate_metatags({'title': 'T'})
        assert tags.apple == ''
        assert tags.ms == ''
        assert tags.primary == '<meta name="title" content="T">'
