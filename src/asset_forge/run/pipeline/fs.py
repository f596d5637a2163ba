"""Filesystem helpers shared by the source tree, watcher, cache and joiner."""

import os
import tempfile
from pathlib import Path
from typing import Iterable, Union

# editor swap/backup files and VCS directories never reach the pipeline
IGNORED_SUFFIXES = ('~', '.swp', '.swx', '.tmp')


def normalize(path: Union[str, Path]) -> Path:
    """Absolute, normalized path used as a file's identity everywhere in the pipeline."""
    return Path(os.path.abspath(os.fspath(path)))


def is_ignored_name(path: Path) -> bool:
    """True for hidden files/directories and editor temp files."""
    for part in Path(path).parts:
        if part.startswith('.') and part not in ('.', '..'):
            return True
    name = Path(path).name
    return name.endswith(IGNORED_SUFFIXES) or (name.startswith('#') and name.endswith('#'))


def is_ignored(path: Path, ignored: Iterable[Path] = (), roots: Iterable[Path] = ()) -> bool:
    """
    Decide whether a path under a watched root should be skipped.

    Args:
        path: Normalized absolute path
        ignored: Files or directories plugins asked the watcher to skip
        roots: Watched roots; hidden-name checks only apply below them
    """
    for entry in ignored:
        if path == entry or entry in path.parents:
            return True
    relative = path
    for root in roots:
        if root in path.parents:
            relative = path.relative_to(root)
            break
    return is_ignored_name(relative)


def atomic_write(path: Path, data: bytes) -> None:
    """Write via a temp file in the same directory so readers never see a partial file."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
