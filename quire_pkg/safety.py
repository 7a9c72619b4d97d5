"""
Path, file, URL and language-code validation for Quire.

Every write or copy performed during a build goes through ``SafetyValidator``
first. Paths containing ``..`` components or symlinks, files above the size
limit and payloads above the size limit are rejected whether or not the
target exists yet.
"""

import os
import re
from pathlib import PurePath
from typing import Optional, Set, Tuple, Union
from urllib.parse import urlparse

from .errors import ValidationError

PathLike = Union[str, os.PathLike]


class SafetyValidator:
    """
    Guard for filesystem writes and site configuration values.
    """

    # Allowed URL schemes for the site base URL
    ALLOWED_SCHEMES: Set[str] = {'http', 'https'}

    # Characters that never belong in a configured URL
    UNSAFE_URL_CHARS: Set[str] = {'<', '>', '"', "'", '\\', ' ', '\t', '\n', '\r'}

    LANGUAGE_CODE = re.compile(r'^[a-z]{2}-[A-Z]{2}$')

    DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

    def __init__(self, max_file_size: int = DEFAULT_MAX_FILE_SIZE):
        """
        Initialize the validator.

        Args:
            max_file_size: Largest file or payload accepted, in bytes
        """
        self.max_file_size = max_file_size

    # Paths

    def _symlink_candidates(self, path: str, root: Optional[str]):
        if root is not None:
            root_abs = os.path.abspath(root)
            current = os.path.abspath(path)
            while current != root_abs and os.path.dirname(current) != current:
                yield current
                current = os.path.dirname(current)
            return
        prefix = ''
        for part in PurePath(path).parts:
            prefix = os.path.join(prefix, part)
            if prefix != os.path.dirname(prefix):
                yield prefix

    def check_path(self, path: PathLike, root: Optional[PathLike] = None) -> Tuple[bool, str]:
        """
        Check that a path is safe to read or write.

        Args:
            path: Path to check; it does not need to exist
            root: Optional directory the path must stay inside

        Returns:
            Tuple of (is_valid, error_message)
        """
        text = os.fspath(path) if path is not None else ''
        if not text:
            return False, "Empty path"
        if '\0' in text:
            return False, f"Null byte in path: {text!r}"
        if '..' in re.split(r'[\\/]', text):
            return False, f"Parent directory reference in path: {text}"

        root_text = os.fspath(root) if root is not None else None
        if root_text is not None and not os.path.isabs(text):
            text = os.path.join(root_text, text)

        for candidate in self._symlink_candidates(text, root_text):
            if os.path.islink(candidate):
                return False, f"Symlink in path: {candidate}"

        if root_text is not None:
            real_root = os.path.realpath(root_text)
            real_path = os.path.realpath(text)
            if os.path.commonpath([real_root, real_path]) != real_root:
                return False, f"Path escapes {root_text}: {text}"

        return True, ""

    def validate_path(self, path: PathLike, root: Optional[PathLike] = None) -> str:
        """Return the absolute path, or raise ValidationError."""
        ok, message = self.check_path(path, root)
        if not ok:
            raise ValidationError(message)
        text = os.fspath(path)
        if root is not None and not os.path.isabs(text):
            text = os.path.join(os.fspath(root), text)
        return os.path.abspath(text)

    def check_file(self, path: PathLike, root: Optional[PathLike] = None) -> Tuple[bool, str]:
        """Check a path and, when the file exists, its size."""
        ok, message = self.check_path(path, root)
        if not ok:
            return ok, message
        target = os.fspath(path)
        if root is not None and not os.path.isabs(target):
            target = os.path.join(os.fspath(root), target)
        if os.path.isfile(target):
            size = os.path.getsize(target)
            if size > self.max_file_size:
                return False, f"File too large ({size} bytes, limit {self.max_file_size}): {target}"
        return True, ""

    def validate_file(self, path: PathLike, root: Optional[PathLike] = None) -> str:
        ok, message = self.check_file(path, root)
        if not ok:
            raise ValidationError(message)
        return self.validate_path(path, root)

    def validate_content_size(self, data: Union[str, bytes]):
        size = len(data.encode('utf-8')) if isinstance(data, str) else len(data)
        if size > self.max_file_size:
            raise ValidationError(f"Content too large ({size} bytes, limit {self.max_file_size})")

    def validate_write(self, path: PathLike, data: Union[str, bytes], root: Optional[PathLike] = None) -> str:
        """Validate a pending write of ``data`` to ``path``; returns the absolute path."""
        self.validate_content_size(data)
        return self.validate_path(path, root)

    # Configuration values

    def check_url(self, url: str) -> Tuple[bool, str]:
        """
        Check a site base URL.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not url:
            return False, "Empty URL"
        if any(char in url for char in self.UNSAFE_URL_CHARS):
            return False, f"Unsafe characters in URL: {url!r}"

        parsed = urlparse(url)
        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False, f"Unsupported URL scheme: {parsed.scheme or '(none)'}"
        if not parsed.netloc:
            return False, "Invalid URL format"
        if '@' in parsed.netloc:
            return False, "Credentials are not allowed in URL"

        hostname = parsed.hostname
        if not hostname:
            return False, "Invalid hostname in URL"
        if hostname.startswith('.'):
            return False, f"Invalid hostname: {hostname}"

        try:
            port = parsed.port
        except ValueError:
            return False, "Invalid port in URL"
        if port == 0:
            return False, "Invalid port in URL"

        return True, ""

    def validate_url(self, url: str) -> str:
        ok, message = self.check_url(url)
        if not ok:
            raise ValidationError(message)
        return url

    def check_language(self, code: str) -> Tuple[bool, str]:
        if not code or not self.LANGUAGE_CODE.match(code):
            return False, f"Invalid language code {code!r}, expected xx-XX"
        return True, ""

    def validate_language(self, code: str) -> str:
        ok, message = self.check_language(code)
        if not ok:
            raise ValidationError(message)
        return code
