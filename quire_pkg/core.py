import os
import shutil
import time
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from email.utils import formatdate
from enum import Enum
from types import MappingProxyType
from typing import Dict, List

import mistune

from . import generators
from .engine import DEFAULT_CACHE_TTL, TemplateEngine
from .errors import CompilationError, ExtractionError, QuireError, ValidationError
from .files import copy_tree, find_index_files, list_files, minify_assets, read_text, write_text
from .frontmatter import extract, parse_document
from .metadata import extract_keywords, generate_metatags, normalize, slugify
from .navigation import generate_navigation, navigation_entry
from .safety import SafetyValidator
from .tags import TagIndex, insert_fragment, render_page

CONTENT_EXTENSIONS = {'.md'}

# Files copied verbatim from the template directory when present.
TEMPLATE_AUXILIARY_FILES = ('main.js', 'sw.js')

# (output file, RenderedDocument field) for the site root and for other pages.
SITE_FILES = (
    ('index.html', 'html'),
    ('rss.xml', 'rss'),
    ('manifest.json', 'manifest'),
    ('robots.txt', 'robots'),
    ('humans.txt', 'humans'),
    ('security.txt', 'security'),
    ('CNAME', 'cname'),
    ('news-sitemap.xml', 'news_sitemap'),
    ('index.txt', 'text'),
)
PAGE_FILES = (
    ('index.html', 'html'),
    ('rss.xml', 'rss'),
    ('news-sitemap.xml', 'news_sitemap'),
    ('index.txt', 'text'),
)


class BuildState(Enum):
    IDLE = 'idle'
    STAGING = 'staging'
    PER_DOCUMENT = 'per-document'
    FINALIZING = 'finalizing'
    PUBLISHING = 'publishing'


@dataclass
class RenderedDocument:
    name: str
    output_dir: str
    html: str
    rss: str
    rss_item: str
    manifest: str
    robots: str
    security: str
    humans: str
    cname: str
    news_sitemap: str = ''
    text: str = ''
    keywords: List[str] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total documents compiled:",
            "Total tags indexed:",
            "Generating XML sitemap",
            "Generating site feed",
            "Generating tag index",
            "Publishing site to",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def create_markdown_parser():
    """Create a Mistune markdown parser with a custom renderer."""
    class CustomRenderer(mistune.HTMLRenderer):
        def __init__(self):
            super().__init__(escape=False)
        def block_code(self, code, info=None):
            escaped_code = mistune.escape(code)
            return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>\n'.format(escaped_code)
    return mistune.create_markdown(
        renderer=CustomRenderer(),
        plugins=['table', 'task_lists', 'strikethrough']
    )


def create_text_parser():
    """Create a Mistune parser that returns the token tree instead of HTML."""
    return mistune.create_markdown(renderer='ast', plugins=['table', 'task_lists', 'strikethrough'])


def directories_overlap(first, second):
    """True when either directory is, or contains, the other."""
    first = os.path.realpath(first)
    second = os.path.realpath(second)
    common = os.path.commonpath([first, second])
    return common in (first, second)


class Quire:
    def __init__(self, content_dir='content', templates_dir='templates', output_dir='public', build_dir=None,
                 site_name=None, base_url=None, language='en-GB', robots='public', assets_dir=None,
                 minify=False, max_file_size=SafetyValidator.DEFAULT_MAX_FILE_SIZE,
                 cache_ttl=DEFAULT_CACHE_TTL, log_dir=None, lastmod=None):
        self.content_dir = content_dir
        self.templates_dir = templates_dir
        self.output_dir = os.path.abspath(output_dir)
        # Staging defaults to a sibling of the output directory.
        self.build_dir = os.path.abspath(build_dir) if build_dir else self.output_dir.rstrip(os.sep) + '.build'
        self.site_name = site_name or ''
        self.base_url = (base_url or '').rstrip('/')
        self.language = language
        self.robots = robots
        self.assets_dir = assets_dir
        self.minify = minify
        self.log_dir = log_dir
        self.lastmod = lastmod

        self.state = BuildState.IDLE
        self.validator = SafetyValidator(max_file_size)
        self.engine = TemplateEngine(templates_dir, cache_ttl)
        self.markdown_parser = create_markdown_parser()
        self.text_parser = create_text_parser()
        self.tag_index = None
        self.feed_items = []
        self.documents_compiled = 0

        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Quire')
        self.logger.setLevel(logging.DEBUG if self.log_dir else logging.INFO)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_formatter = logging.Formatter('%(message)s')
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

            # File handler for all logs
            if self.log_dir:
                os.makedirs(self.log_dir, exist_ok=True)
                log_filename = datetime.now().strftime('quire_%Y-%m-%d_%H-%M-%S.log')
                file_handler = logging.FileHandler(os.path.join(self.log_dir, log_filename))
                file_handler.setLevel(logging.DEBUG)
                file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
                file_handler.setFormatter(file_formatter)
                self.logger.addHandler(file_handler)

    def markdown_filter(self, text):
        """Convert markdown text to HTML."""
        return self.markdown_parser(text)

    def validate_config(self):
        """Reject unsafe directories and malformed site settings before anything is written."""
        if self.base_url:
            self.validator.validate_url(self.base_url)
        self.validator.validate_language(self.language)
        if self.robots not in ('public', 'private'):
            raise ValidationError(f"Invalid robots mode: {self.robots!r}")
        for directory in (self.content_dir, self.templates_dir):
            self.validator.validate_path(directory)
            if not os.path.isdir(directory):
                raise ValidationError(f"Directory not found: {directory}")
        self.validator.validate_path(self.output_dir)
        self.validator.validate_path(self.build_dir)
        if os.path.abspath(self.build_dir) == self.output_dir:
            raise ValidationError("Build directory and output directory must differ")
        sources = [self.content_dir, self.templates_dir]
        if self.assets_dir:
            sources.append(self.assets_dir)
        for target in (self.output_dir, self.build_dir):
            for source in sources:
                if directories_overlap(target, source):
                    raise ValidationError(f"Directory {target} overlaps source directory {source}")

    def prepare_staging(self):
        """Create an empty staging directory next to the output directory."""
        self.state = BuildState.STAGING
        if os.path.exists(self.build_dir):
            shutil.rmtree(self.build_dir)
        os.makedirs(self.build_dir)
        os.makedirs(os.path.dirname(self.output_dir), exist_ok=True)
        self.logger.debug(f"Staging into {self.build_dir}")

    def get_source_files(self):
        """Content documents as sorted paths relative to the content directory."""
        return list_files(self.content_dir, CONTENT_EXTENSIONS)

    def build_navigation(self, sources):
        """Navigation menu from a read-only scan of the content documents."""
        entries = []
        for relative in sources:
            slug = None
            try:
                metadata = extract(read_text(relative, self.validator, self.content_dir))
                slug = metadata.get('slug') or (slugify(metadata['title']) if metadata.get('title') else None)
            except ExtractionError:
                # The document is compiled strictly later; the menu falls back to its file name.
                pass
            entries.append(navigation_entry(relative, slug))
        return generate_navigation(entries)

    def output_dir_for(self, stem, metadata):
        if stem == 'index':
            return ''
        slug = metadata['slug'].strip()
        if not slug or slug in ('.', '..') or any(c in slug for c in ('/', '\\', '\0')):
            raise ValidationError(f"Invalid slug: {slug!r}")
        return slug

    def build_context(self, metadata, content, navigation, keywords):
        """Site values, then document metadata, then computed values."""
        meta_tags = generate_metatags(metadata)
        context = {
            'site_name': self.site_name,
            'base_url': self.base_url,
            'language': self.language,
        }
        context.update(metadata)
        context.update({
            'content': content,
            'navigation': navigation,
            'apple': meta_tags.apple,
            'primary': meta_tags.primary,
            'opengraph': meta_tags.og,
            'microsoft': meta_tags.ms,
            'twitter': meta_tags.twitter,
            'keywords_list': ', '.join(keywords),
        })
        return MappingProxyType(context)

    def compile_document(self, relative_path, navigation):
        """Run one document through parse, normalize, render and artifact generation."""
        text = read_text(relative_path, self.validator, self.content_dir)
        metadata, body = parse_document(text)
        metadata = normalize(metadata)

        stem = os.path.splitext(os.path.basename(relative_path))[0]
        output_dir = self.output_dir_for(stem, metadata)
        metadata.setdefault('permalink', generators.page_url(self.base_url, output_dir))

        content = self.markdown_filter(body)
        keywords = extract_keywords(metadata)
        context = self.build_context(metadata, content, navigation, keywords)
        page_html = self.engine.render(context, metadata.get('layout'))

        item = generators.rss_item(metadata, self.base_url)
        channel = generators.channel_from_metadata(metadata, self.base_url, self.site_name)
        return RenderedDocument(
            name=relative_path,
            output_dir=output_dir,
            html=page_html,
            rss=generators.rss_channel(channel, [item]),
            rss_item=item,
            manifest=generators.manifest(metadata, self.site_name),
            robots=generators.robots(self.base_url, self.robots),
            security=generators.security(metadata),
            humans=generators.humans(metadata),
            cname=generators.cname(metadata),
            news_sitemap=generators.news_sitemap(metadata, self.base_url, self.site_name, self.language),
            text=generators.plain_text(metadata, generators.tokens_to_text(self.text_parser(body))),
            keywords=keywords,
            metadata=metadata,
        )

    def write_document(self, document):
        """Write a document's artifacts into staging; empty artifacts are skipped."""
        files = SITE_FILES if document.output_dir == '' else PAGE_FILES
        for filename, attribute in files:
            content = getattr(document, attribute)
            if content:
                write_text(os.path.join(document.output_dir, filename), content, self.validator, self.build_dir)

    def generate_sitemap(self):
        """Sitemap of every index.html already written to staging."""
        paths = find_index_files(self.build_dir)
        lastmod = self.lastmod or date.today().isoformat()
        write_text('sitemap.xml', generators.sitemap(self.base_url, paths, lastmod), self.validator, self.build_dir)
        self.logger.info("Generating XML sitemap")

    def generate_site_feed(self):
        """Site-wide feed with every document's item, newest first."""
        items = [item for _, item in sorted(self.feed_items, key=lambda pair: pair[0], reverse=True)]
        channel = {
            'title': self.site_name,
            'link': generators.page_url(self.base_url) if self.base_url else '',
            'description': f"Latest posts from {self.site_name}" if self.site_name else '',
            'language': self.language,
            'last_build_date': formatdate(usegmt=True),
            'atom_link': f"{self.base_url}/feed.xml" if self.base_url else '',
        }
        write_text('feed.xml', generators.rss_channel(channel, items), self.validator, self.build_dir)
        self.logger.info("Generating site feed")

    def generate_tag_index(self):
        """Write tags/index.html, filling a content page's [[content]] marker when one exists."""
        fragment = self.tag_index.finalize()
        relative = os.path.join('tags', 'index.html')
        existing = os.path.join(self.build_dir, relative)
        if os.path.isfile(existing):
            page = insert_fragment(read_text(relative, self.validator, self.build_dir), fragment)
        else:
            page = render_page(fragment, self.site_name, self.language.split('-')[0])
        write_text(relative, page, self.validator, self.build_dir)
        self.logger.info("Generating tag index")

    def copy_auxiliary_files(self):
        for name in TEMPLATE_AUXILIARY_FILES:
            source = os.path.join(self.templates_dir, name)
            if os.path.isfile(source):
                write_text(name, read_text(name, self.validator, self.templates_dir), self.validator, self.build_dir)
        if self.assets_dir and os.path.isdir(self.assets_dir):
            destination = os.path.join(self.build_dir, 'assets')
            copied = copy_tree(self.assets_dir, destination, self.validator)
            self.logger.debug(f"Copied {copied} asset files")
            if self.minify:
                minify_assets(destination, self.validator)

    def finalize(self):
        self.state = BuildState.FINALIZING
        # Every document page is on disk before the sitemap walks staging.
        self.generate_sitemap()
        self.generate_tag_index()
        self.generate_site_feed()
        self.copy_auxiliary_files()

    def publish(self):
        """Replace the published directory with the staging directory."""
        self.state = BuildState.PUBLISHING
        self.logger.info(f"Publishing site to {self.output_dir}")
        if os.path.exists(self.output_dir):
            shutil.rmtree(self.output_dir)
        os.rename(self.build_dir, self.output_dir)

    def compile(self):
        """
        Compile every content document and publish the site.

        Any failure aborts the run before publishing, leaving the previous
        published site untouched and the staging directory in place.
        """
        start_time = time.time()
        self.tag_index = TagIndex()
        self.feed_items = []
        self.documents_compiled = 0
        try:
            self.validate_config()
            self.prepare_staging()

            self.state = BuildState.PER_DOCUMENT
            sources = self.get_source_files()
            if not sources:
                self.logger.warning("No content documents found to compile.")
            navigation = self.build_navigation(sources)

            outputs = {}
            for relative in sources:
                try:
                    document = self.compile_document(relative, navigation)
                    if document.output_dir in outputs:
                        raise ValidationError(
                            f"Output directory {document.output_dir or '/'!r} already used by {outputs[document.output_dir]}"
                        )
                    outputs[document.output_dir] = relative
                    self.tag_index.record_document(document.metadata, self.base_url)
                    self.feed_items.append((document.metadata['date'], document.rss_item))
                    self.write_document(document)
                except (QuireError, OSError) as e:
                    self.logger.error(f"Error compiling {relative}: {e}")
                    raise CompilationError(relative, e) from e
                self.documents_compiled += 1

            self.finalize()
            self.publish()
        finally:
            self.state = BuildState.IDLE

        self.logger.info(f"Total documents compiled: {self.documents_compiled}")
        self.logger.info(f"Total tags indexed: {len(self.tag_index)}")
        self.logger.info(f"Site build completed in {time.time() - start_time:.2f} seconds")
        return self.output_dir
