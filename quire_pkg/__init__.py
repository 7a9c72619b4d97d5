"""
Quire - a static site compiler.

Quire turns a directory of Markdown documents, each starting with a YAML,
TOML or JSON metadata block, into a published website: HTML pages, RSS
feeds, a sitemap, a web app manifest, robots/security/humans files, a
CNAME file and a tag index. Sites are built in a staging directory and
swapped into place only when every document compiled.
"""

__version__ = "1.0.0"

from .core import Quire, BuildState, RenderedDocument

__all__ = ['Quire', 'BuildState', 'RenderedDocument']
