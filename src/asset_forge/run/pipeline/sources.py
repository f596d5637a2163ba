"""
Source tree tracking and bundle planning.

The SourceTree holds every file found under the watched paths. Bundle
planning maps the 'files:' groups of the config onto those files.
"""
import fnmatch
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from asset_forge.build.config.exceptions import ConfigurationError
from asset_forge.build.config.models import PipelineConfig
from asset_forge.build.plugins.interface import Plugin
from asset_forge.build.plugins.registry import PluginRegistry
from .fs import is_ignored, normalize
from .models import BundleSpec, SourceFile, content_hash

logger = logging.getLogger(__name__)


class SourceTree:
    """Known source files. Removed files are flagged, never forgotten, while watching."""

    def __init__(self, roots: Iterable[Path], ignored: Iterable[Path] = ()):
        self.roots = [normalize(r) for r in roots]
        self.ignored = [normalize(p) for p in ignored]
        self._files: Dict[Path, SourceFile] = {}

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If a watched path does not exist or is not a directory
        """
        for root in self.roots:
            if not root.is_dir():
                raise ConfigurationError(f"Watched path does not exist: {root}", path=str(root))

    def is_ignored(self, path: Path) -> bool:
        return is_ignored(path, self.ignored, self.roots)

    def scan(self) -> List[SourceFile]:
        """Walk the watched paths and record every file found."""
        self.validate()
        for root in self.roots:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = sorted(d for d in dirnames if not self.is_ignored(normalize(os.path.join(dirpath, d))))
                for filename in sorted(filenames):
                    path = normalize(os.path.join(dirpath, filename))
                    if not self.is_ignored(path):
                        self.touch(path)
        logger.info(f"Found {len(self.files())} source files under {', '.join(map(str, self.roots))}")
        return self.files()

    def touch(self, path: Path) -> Tuple[Optional[SourceFile], bool]:
        """
        Refresh a file's hash and timestamp from disk.

        Returns:
            (source_file, changed). source_file is None if the path is not a
            readable file; a vanished file is marked removed.
        """
        path = normalize(path)
        try:
            stat = path.stat()
            with open(path, 'rb') as f:
                digest = content_hash(f.read())
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return self.mark_removed(path), True
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            return None, False

        existing = self._files.get(path)
        if existing is None:
            existing = SourceFile(path=path)
            self._files[path] = existing
            changed = True
        else:
            changed = existing.removed or existing.content_hash != digest
        existing.content_hash = digest
        existing.mtime = stat.st_mtime
        existing.removed = False
        return existing, changed

    def mark_removed(self, path: Path) -> Optional[SourceFile]:
        source = self._files.get(normalize(path))
        if source is not None:
            source.removed = True
        return source

    def get(self, path: Path) -> Optional[SourceFile]:
        return self._files.get(normalize(path))

    def __contains__(self, path) -> bool:
        source = self._files.get(normalize(path))
        return source is not None and not source.removed

    def files(self) -> List[SourceFile]:
        """Live (not removed) files, sorted by path."""
        return sorted((f for f in self._files.values() if not f.removed), key=lambda f: f.path)


def _matches(relative: str, pattern: str) -> bool:
    """Glob match against a posix path relative to the project root.

    Patterns without glob characters are directory prefixes ('app/vendor').
    """
    if not any(ch in pattern for ch in '*?['):
        prefix = pattern.rstrip('/')
        return relative == prefix or relative.startswith(prefix + '/')
    if fnmatch.fnmatchcase(relative, pattern):
        return True
    return pattern.startswith('**/') and fnmatch.fnmatchcase(relative, pattern[3:])


def plugin_for(path: Path, registry: PluginRegistry) -> Optional[Plugin]:
    return registry.find(Path(path).suffix)


def plan_bundles(config: PipelineConfig, tree: SourceTree, registry: PluginRegistry) -> Dict[Path, BundleSpec]:
    """
    Work out every bundle and its ordered sources.

    A file joins a bundle when a plugin covers it, the plugin's output
    extension equals the bundle's extension, and the file matches one of the
    bundle's patterns. Order: 'order.before' entries as listed, the rest
    sorted by path, then 'order.after' entries as listed.

    Raises:
        ConfigurationError: If two groups write the same output, or an
            ordered file exists but no plugin covers it
    """
    root = normalize(config.root)
    bundles: Dict[Path, BundleSpec] = {}

    for group_name, group in config.files.items():
        pinned_before = [normalize(config.resolve(p)) for p in group.order.before]
        pinned_after = [normalize(config.resolve(p)) for p in group.order.after]
        for pinned in pinned_before + pinned_after:
            if pinned in tree and plugin_for(pinned, registry) is None:
                raise ConfigurationError(
                    f"'{pinned}' is ordered in files.{group_name} but no plugin handles '{pinned.suffix}' files"
                )

        for output, patterns in group.outputs().items():
            output_path = normalize(config.public_path() / output)
            if output_path in bundles:
                raise ConfigurationError(f"Bundle '{output}' is produced by more than one file group")
            extension = Path(output).suffix.lower()

            members = []
            for source in tree.files():
                plugin = plugin_for(source.path, registry)
                if plugin is None or plugin.output_extension_for(source.path) != extension:
                    continue
                try:
                    relative = source.path.relative_to(root).as_posix()
                except ValueError:
                    relative = source.path.as_posix()
                if any(_matches(relative, pattern) for pattern in patterns):
                    members.append(source.path)

            before = [p for p in pinned_before if p in members]
            after = [p for p in pinned_after if p in members and p not in before]
            middle = sorted(p for p in members if p not in before and p not in after)
            bundles[output_path] = BundleSpec(output=output_path, sources=before + middle + after)
            logger.debug(f"Bundle {output_path}: {len(bundles[output_path].sources)} sources")

    return bundles
