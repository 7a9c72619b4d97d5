#!/usr/bin/env python3
"""
Command-line interface for Quire.
"""

import os
import sys
import argparse
import shutil
from importlib import resources
from typing import Optional, List

from . import __version__
from .core import Quire
from .errors import QuireError
from .settings import QuireSettings

# Layouts copied into a new project by --init
STARTER_LAYOUTS = ['index.html', 'page.html', 'post.html', 'contact.html']

SAMPLE_INDEX = """---
title: Welcome
date: 2025-01-01
description: The home page of a new Quire site.
keywords: quire, static site, getting started
tags: getting started
layout: index
---

# Welcome to Quire

This page was generated from `content/index.md`. Edit it, then run `quire` again.
"""

SAMPLE_ABOUT = """+++
title = "About"
date = "2025-01-01"
description = "About this site."
tags = "getting started"
layout = "page"
+++

Every document starts with a metadata block in YAML (`---`), TOML (`+++`) or JSON (`{ }`).
"""


def create_starter_structure(target_dir: Optional[str] = None) -> None:
    """Create the starter templates and content of a new site."""
    current_dir = target_dir or os.getcwd()

    for directory in ['templates', 'content', 'assets']:
        dir_path = os.path.join(current_dir, directory)
        if os.path.exists(dir_path):
            print(f"Directory already exists: {directory}")
        else:
            os.makedirs(dir_path, exist_ok=True)
            print(f"Created directory: {directory}")

    # Copy layouts shipped with the package
    package_templates = resources.files('quire_pkg').joinpath('templates')
    for layout in STARTER_LAYOUTS:
        dest_path = os.path.join(current_dir, 'templates', layout)
        if os.path.exists(dest_path):
            print(f"Template already exists: templates/{layout}")
            continue
        with resources.as_file(package_templates.joinpath(layout)) as src_path:
            shutil.copy2(src_path, dest_path)
        print(f"Created template: templates/{layout}")

    for filename, body in (('index.md', SAMPLE_INDEX), ('about.md', SAMPLE_ABOUT)):
        dest_path = os.path.join(current_dir, 'content', filename)
        if os.path.exists(dest_path):
            print(f"Content already exists: content/{filename}")
            continue
        with open(dest_path, 'w', encoding='utf-8') as f:
            f.write(body)
        print(f"Created content: content/{filename}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Quire - Static Site Compiler')
    parser.add_argument('--content', type=str,
                        help='Content directory containing markdown files')
    parser.add_argument('--templates', type=str,
                        help='Templates directory')
    parser.add_argument('--output', type=str,
                        help='Output directory for the published site')
    parser.add_argument('--build', type=str,
                        help='Staging directory (defaults to <output>.build)')
    parser.add_argument('--assets', type=str,
                        help='Assets directory to copy to output')
    parser.add_argument('--site-name', type=str, dest='site_name',
                        help='Site name used in feeds and the manifest')
    parser.add_argument('--site-url', type=str, dest='site_url',
                        help='Site URL for RSS feeds and sitemaps')
    parser.add_argument('--language', type=str,
                        help='Site language code, e.g. en-GB')
    parser.add_argument('--robots', type=str, choices=['public', 'private'],
                        help='Robots.txt configuration')
    parser.add_argument('--log-dir', type=str, dest='log_dir',
                        help='Directory for detailed build logs')
    parser.add_argument('--minify', action='store_true', default=None,
                        help='Minify CSS and JS assets')
    parser.add_argument('--watch', action='store_true', default=None,
                        help='Watch for file changes and rebuild (not implemented)')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter site')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = QuireSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")

        print("\nCreating starter project structure...")
        create_starter_structure()

        print("\nYour new Quire site is ready!")
        print("Edit the configuration file and content, then run 'quire' to build your site.")
        return

    try:
        # Load settings from configuration file
        settings_loader = QuireSettings()
        settings_loader.load_settings()

        # Command line arguments take precedence
        args_dict = {k: v for k, v in vars(args).items() if v is not None and k != 'init'}
        final_settings = settings_loader.merge_with_args(args_dict)

        output_dir = os.path.expanduser(final_settings['output'])

        compiler = Quire(
            content_dir=final_settings['content'],
            templates_dir=final_settings['templates'],
            output_dir=output_dir,
            build_dir=final_settings['build'],
            site_name=final_settings['site_name'],
            base_url=final_settings['site_url'],
            language=final_settings['language'],
            robots=final_settings['robots'],
            assets_dir=final_settings['assets'],
            minify=final_settings['minify'],
            max_file_size=final_settings['max_file_size'],
            cache_ttl=final_settings['cache_ttl'],
            log_dir=final_settings['log_dir'],
        )

        if final_settings['watch']:
            compiler.logger.warning("Watch mode is not implemented; building once.")

        compiler.compile()

    except (QuireError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
