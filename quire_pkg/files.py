"""
Filesystem helpers used by the compiler: validated reads and writes,
directory listing, tree copies and asset minification.
"""

import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor

import csscompressor
import rjsmin

from .safety import SafetyValidator

logger = logging.getLogger('Files')


def read_text(path, validator: SafetyValidator, root=None) -> str:
    """Read a UTF-8 file after checking its path and size."""
    target = validator.validate_file(path, root)
    with open(target, 'r', encoding='utf-8') as f:
        return f.read()


def write_text(path, content: str, validator: SafetyValidator, root=None) -> str:
    """Write a UTF-8 file after checking its path and payload size."""
    target = validator.validate_write(path, content, root)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, 'w', encoding='utf-8') as f:
        f.write(content)
    logger.debug(f"Wrote {target}")
    return target


def list_files(directory, extensions=None):
    """
    List files under ``directory`` as sorted POSIX paths relative to it.

    Args:
        directory: Directory to walk; a missing directory yields nothing
        extensions: Optional collection of lowercase extensions such as ``{'.md'}``
    """
    if not os.path.isdir(directory):
        return []
    found = []
    for current, dirs, files in os.walk(directory):
        dirs.sort()
        for name in files:
            if extensions and os.path.splitext(name)[1].lower() not in extensions:
                continue
            relative = os.path.relpath(os.path.join(current, name), directory)
            found.append(relative.replace(os.sep, '/'))
    return sorted(found)


def find_index_files(root):
    """Relative paths of every ``index.html`` already written under ``root``."""
    return [path for path in list_files(root) if path.rsplit('/', 1)[-1] == 'index.html']


def copy_tree(source, destination, validator: SafetyValidator, max_workers=None):
    """
    Copy every file under ``source`` into ``destination`` using a worker pool.

    Each source and destination path is validated before anything is copied.

    Returns:
        Number of files copied
    """
    if not os.path.isdir(source):
        return 0
    validator.validate_path(source)
    pairs = []
    for relative in list_files(source):
        src = validator.validate_file(relative, source)
        dst = validator.validate_path(relative, destination)
        pairs.append((src, dst))

    def copy_one(pair):
        src, dst = pair
        os.makedirs(os.path.dirname(dst), exist_ok=True)
        shutil.copy2(src, dst)
        return dst

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for dst in executor.map(copy_one, pairs):
            logger.debug(f"Copied {dst}")
    return len(pairs)


def minify_assets(directory, validator: SafetyValidator):
    """
    Write ``.min.css`` and ``.min.js`` siblings for every stylesheet and script.

    Sources are read and results written through ``validator`` inside ``directory``.

    Returns:
        Number of files minified
    """
    count = 0
    for relative in list_files(directory, {'.css', '.js'}):
        if relative.endswith(('.min.css', '.min.js')):
            continue
        base, extension = os.path.splitext(relative)
        try:
            content = read_text(relative, validator, directory)
            if extension.lower() == '.css':
                minified = csscompressor.compress(content)
            else:
                minified = rjsmin.jsmin(content)
            write_text(f"{base}.min{extension}", minified, validator, directory)
            count += 1
            logger.debug(f"Minified {relative}")
        except (IOError, OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to minify {relative}: {e}")
    return count
