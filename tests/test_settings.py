"""Tests for configuration loading and merging."""

import pytest
import json
import os

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.settings import QuireSettings


class TestQuireSettings:
    """Test cases for QuireSettings."""

    def test_defaults_without_config_file(self, temp_dir):
        settings = QuireSettings(temp_dir).load_settings()
        assert settings['output'] == 'public'
        assert settings['language'] == 'en-GB'
        assert settings['cache_ttl'] == 60

    def test_yaml_config(self, temp_dir):
        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("site_name: Docs\nminify: true\n")
        loader = QuireSettings(temp_dir)
        settings = loader.load_settings()
        assert settings['site_name'] == 'Docs'
        assert settings['minify'] is True
        assert settings['content'] == 'content'
        assert loader.config_file_path.endswith('quire.yml')

    def test_yml_preferred_over_json(self, temp_dir):
        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("site_name: From YAML\n")
        with open(os.path.join(temp_dir, 'quire.json'), 'w') as f:
            json.dump({'site_name': 'From JSON'}, f)
        assert QuireSettings(temp_dir).load_settings()['site_name'] == 'From YAML'

    def test_json_config(self, temp_dir):
        with open(os.path.join(temp_dir, 'quire.json'), 'w') as f:
            json.dump({'output': 'dist'}, f)
        assert QuireSettings(temp_dir).load_settings()['output'] == 'dist'

    def test_empty_and_unknown_keys(self, temp_dir):
        """Test that an empty file keeps defaults and unknown keys are ignored."""
        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("")
        assert QuireSettings(temp_dir).load_settings()['output'] == 'public'

        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("posts_per_page: 5\noutput: dist\n")
        settings = QuireSettings(temp_dir).load_settings()
        assert 'posts_per_page' not in settings
        assert settings['output'] == 'dist'

    def test_invalid_yaml_is_reported(self, temp_dir):
        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("site_name: [unclosed\n")
        with pytest.raises(ValueError, match='quire.yml'):
            QuireSettings(temp_dir).load_settings()

    def test_config_must_be_a_mapping(self, temp_dir):
        with open(os.path.join(temp_dir, 'quire.json'), 'w') as f:
            f.write('["not", "a", "mapping"]')
        with pytest.raises(ValueError, match='mapping'):
            QuireSettings(temp_dir).load_settings()

    def test_oversized_config_is_refused(self, temp_dir):
        loader = QuireSettings(temp_dir)
        loader.MAX_CONFIG_SIZE = 10
        with open(os.path.join(temp_dir, 'quire.yml'), 'w') as f:
            f.write("site_name: A very long site name\n")
        with pytest.raises(ValueError, match='exceeds'):
            loader.load_settings()

    @pytest.mark.parametrize('file_format', ['yml', 'json'])
    def test_sample_config_round_trips(self, temp_dir, file_format):
        """Test that a generated sample config loads back."""
        loader = QuireSettings(temp_dir)
        path = loader.create_sample_config(file_format)
        assert os.path.basename(path) == f'quire.{file_format}'
        settings = QuireSettings(temp_dir).load_settings()
        assert settings['site_url'] == 'https://example.com'
        assert settings['language'] == 'en-GB'

    def test_sample_config_unknown_format(self, temp_dir):
        with pytest.raises(ValueError):
            QuireSettings(temp_dir).create_sample_config('ini')

    def test_merge_with_args(self, temp_dir):
        """Test that command-line values override the config file."""
        loader = QuireSettings(temp_dir)
        loader.settings.update({'site_name': 'Config', 'minify': True})
        merged = loader.merge_with_args({'site_name': 'CLI', 'output': None, 'minify': False})
        assert merged['site_name'] == 'CLI'
        assert merged['output'] == 'public'
        assert merged['minify'] is True
