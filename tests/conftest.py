"""Test configuration and fixtures for Quire tests."""

import pytest
import tempfile
import shutil
import os
from pathlib import Path

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)

@pytest.fixture
def mock_content_dir(temp_dir):
    """Create a content directory with one document per metadata dialect."""
    content_dir = Path(temp_dir) / 'content'
    content_dir.mkdir()

    # YAML front matter, site root document
    (content_dir / 'index.md').write_text("""---
title: Welcome
date: 2024-01-01
description: The home page
keywords: python, static, site
tags: python, web
author: Ada Lovelace
security_contact: mailto:security@example.com
security_expires: "2030-01-01T00:00:00Z"
cname: example.com
---

# Hi

Welcome to the test site.
""")

    # TOML front matter with a DD/MM/YYYY date
    (content_dir / 'about.md').write_text("""+++
title = "About Us"
date = "20/05/2023"
layout = "page"
tags = "web"
description = "Who we are"
+++

About this site.
""")

    # JSON front matter with braces inside a string
    (content_dir / 'contact.md').write_text("""{
  "title": "Contact",
  "date": "2023-05-20T15:30:00Z",
  "layout": "contact",
  "description": "Reach us {anytime}"
}

Write to us at `hello@example.com`.
""")

    return str(content_dir)

@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a templates directory with index and page layouts."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'index.html').write_text(
        "<html><head><title>{{title}} | {{site_name}}</title>\n{{primary}}</head>"
        "<body>{{navigation}}<main>{{content}}</main></body></html>"
    )
    (templates_dir / 'page.html').write_text(
        "<html><body>{{navigation}}<section>{{title}}: {{content}}</section></body></html>"
    )

    return str(templates_dir)

@pytest.fixture
def mock_output_dir(temp_dir):
    """Path of the published site directory."""
    return os.path.join(temp_dir, 'public')
