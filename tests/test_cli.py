"""Tests for the command-line interface."""

import pytest
import os

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.cli import build_parser, create_starter_structure, main


class TestCli:
    """Test cases for quire's entry point."""

    def test_parser_flags(self):
        args = build_parser().parse_args(['--site-url', 'https://example.com', '--minify'])
        assert args.site_url == 'https://example.com'
        assert args.minify is True
        assert args.watch is None

    def test_starter_structure(self, temp_dir):
        create_starter_structure(temp_dir)
        for layout in ('index.html', 'page.html', 'post.html', 'contact.html'):
            assert os.path.isfile(os.path.join(temp_dir, 'templates', layout))
        assert os.path.isfile(os.path.join(temp_dir, 'content', 'index.md'))
        assert os.path.isfile(os.path.join(temp_dir, 'content', 'about.md'))

    def test_starter_structure_keeps_existing_files(self, temp_dir):
        os.makedirs(os.path.join(temp_dir, 'content'))
        with open(os.path.join(temp_dir, 'content', 'index.md'), 'w') as f:
            f.write('mine')
        create_starter_structure(temp_dir)
        with open(os.path.join(temp_dir, 'content', 'index.md')) as f:
            assert f.read() == 'mine'

    def test_init_then_build(self, temp_dir, monkeypatch):
        """Test that a freshly initialized project compiles."""
        monkeypatch.chdir(temp_dir)
        main(['--init', 'yml'])
        assert os.path.isfile(os.path.join(temp_dir, 'quire.yml'))

        main([])

        public = os.path.join(temp_dir, 'public')
        with open(os.path.join(public, 'index.html'), encoding='utf-8') as f:
            home = f.read()
        assert 'Welcome to Quire' in home
        assert 'My Quire Site' in home
        assert os.path.isfile(os.path.join(public, 'about', 'index.html'))
        assert os.path.isfile(os.path.join(public, 'sitemap.xml'))
        assert os.path.isfile(os.path.join(public, 'tags', 'index.html'))

    def test_arguments_override_config(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        main(['--init', 'json'])
        main(['--output', 'dist', '--robots', 'private'])
        with open(os.path.join(temp_dir, 'dist', 'robots.txt')) as f:
            assert f.read() == "User-agent: *\nDisallow: /\n"

    def test_errors_exit_with_status_one(self, temp_dir, monkeypatch, capsys):
        monkeypatch.chdir(temp_dir)
        with pytest.raises(SystemExit) as excinfo:
            main(['--content', 'missing'])
        assert excinfo.value.code == 1
        assert 'Error:' in capsys.readouterr().err
