#!/usr/bin/env python3
"""
Settings loader for Quire.
Supports configuration from quire.yml, quire.yaml, or quire.json files.
"""

import os
import json
import logging
import yaml
from typing import Dict, Any, Optional

logger = logging.getLogger('Quire')


def _load_yaml(f):
    return yaml.safe_load(f)


def _load_json(f):
    return json.load(f)


class QuireSettings:
    """Load and manage Quire configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'content': 'content',
        'templates': 'templates',
        'output': 'public',
        'build': None,
        'assets': None,
        'site_name': None,
        'site_url': None,
        'language': 'en-GB',
        'robots': 'public',
        'minify': False,
        'watch': False,
        'cache_ttl': 60,
        'max_file_size': 10 * 1024 * 1024,
        'log_dir': None,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['quire.yml', 'quire.yaml', 'quire.json']

    LOADERS = {
        '.yml': _load_yaml,
        '.yaml': _load_yaml,
        '.json': _load_json,
    }

    # Configuration files larger than this are refused
    MAX_CONFIG_SIZE = 1024 * 1024

    # (section heading, [(key, value, comment)]) written by create_sample_config
    SAMPLE_SECTIONS = [
        ('Site information', [
            ('site_url', 'https://example.com', None),
            ('site_name', 'My Quire Site', None),
            ('language', 'en-GB', 'xx-XX'),
        ]),
        ('Build settings', [
            ('content', 'content', None),
            ('templates', 'templates', None),
            ('output', 'public', 'staged in <output>.build, then swapped in'),
            ('assets', 'assets', None),
        ]),
        ('SEO settings', [
            ('robots', 'public', 'public or private'),
        ]),
        ('Development settings', [
            ('minify', False, None),
            ('watch', False, None),
        ]),
    ]

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings

        Raises:
            ValueError: The configuration file is malformed or too large
            IOError: The configuration file cannot be read
        """
        config_file = self._find_config_file()
        if config_file is None:
            return self.settings.copy()

        self.config_file_path = config_file
        loaded_settings = self._load_config_file(config_file)
        unknown = sorted(set(loaded_settings) - set(self.DEFAULT_SETTINGS))
        if unknown:
            logger.warning(f"Ignoring unknown settings in {os.path.basename(config_file)}: {', '.join(unknown)}")
        self.settings.update({k: v for k, v in loaded_settings.items() if k in self.DEFAULT_SETTINGS})
        print(f"Loaded configuration from: {os.path.relpath(config_file)}")

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """Return the first configuration file present, or None."""
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.isfile(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings; an empty file gives an empty dictionary
        """
        loader = self.LOADERS.get(os.path.splitext(config_path)[1].lower())
        if loader is None:
            raise ValueError(f"Unsupported config file format: {config_path}")

        try:
            size = os.path.getsize(config_path)
            if size > self.MAX_CONFIG_SIZE:
                raise ValueError(f"Configuration file {config_path} exceeds {self.MAX_CONFIG_SIZE} bytes")
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = loader(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")
        except UnicodeDecodeError as e:
            raise ValueError(f"Configuration file {config_path} is not UTF-8: {e}")
        except OSError as e:
            raise IOError(f"Error reading configuration file {config_path}: {e}")

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def _sample_yaml(self) -> str:
        lines = ["# Quire Configuration File"]
        for heading, entries in self.SAMPLE_SECTIONS:
            lines.append("")
            lines.append(f"# {heading}")
            for key, value, comment in entries:
                rendered = yaml.safe_dump({key: value}, default_flow_style=False).strip()
                lines.append(f"{rendered}  # {comment}" if comment else rendered)
        return '\n'.join(lines) + '\n'

    def _sample_json(self) -> str:
        sample = {key: value for _, entries in self.SAMPLE_SECTIONS for key, value, _ in entries}
        return json.dumps(sample, indent=2) + '\n'

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        if file_format in ('yml', 'yaml'):
            text = self._sample_yaml()
        elif file_format == 'json':
            text = self._sample_json()
        else:
            raise ValueError(f"Unsupported config file format: {file_format}")

        config_path = os.path.join(self.config_dir, f'quire.{file_format}')
        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments; store_true flags only switch on
        for key, value in args_dict.items():
            if value is None or (value is False and merged.get(key)):
                continue
            merged[key] = value

        return merged
