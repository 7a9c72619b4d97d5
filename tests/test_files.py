"""Tests for the filesystem helpers."""

import pytest
import os
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.errors import ValidationError
from quire_pkg.files import copy_tree, list_files, minify_assets
from quire_pkg.safety import SafetyValidator


@pytest.fixture
def assets(temp_dir):
    """Asset directory with one stylesheet and one script."""
    directory = Path(temp_dir) / 'assets'
    (directory / 'css').mkdir(parents=True)
    (directory / 'css' / 'style.css').write_text("a {\n    color: blue;\n}\n")
    (directory / 'app.js').write_text("var x = 1;\n")
    return str(directory)


class TestMinifyAssets:
    """Test cases for writing minified siblings."""

    def test_siblings_are_written(self, assets):
        assert minify_assets(assets, SafetyValidator()) == 2
        assert list_files(assets) == ['app.js', 'app.min.js', 'css/style.css', 'css/style.min.css']
        assert Path(assets, 'css', 'style.min.css').read_text() == 'a{color:blue}'

    def test_symlinked_target_is_rejected(self, assets, temp_dir):
        """Test that a minified file is never written through a symlink."""
        outside = Path(temp_dir) / 'outside.css'
        outside.write_text('untouched')
        os.symlink(outside, os.path.join(assets, 'css', 'style.min.css'))

        with pytest.raises(ValidationError):
            minify_assets(assets, SafetyValidator())
        assert outside.read_text() == 'untouched'

    def test_oversized_source_is_rejected(self, assets):
        with pytest.raises(ValidationError):
            minify_assets(assets, SafetyValidator(max_file_size=4))


class TestCopyTree:
    """Test cases for copying asset trees."""

    def test_copies_every_file(self, assets, temp_dir):
        destination = os.path.join(temp_dir, 'copy')
        assert copy_tree(assets, destination, SafetyValidator()) == 2
        assert list_files(destination) == ['app.js', 'css/style.css']

    def test_missing_source(self, temp_dir):
        assert copy_tree(os.path.join(temp_dir, 'nope'), os.path.join(temp_dir, 'copy'), SafetyValidator()) == 0
