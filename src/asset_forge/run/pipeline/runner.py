"""
Transform runner: turns one source file into one BuildArtifact.

Plugin failures never escape; they come back as artifacts in error state
carrying a diagnostic.
"""
import logging
from typing import Optional

from asset_forge.build.config.exceptions import PluginExecutionError
from asset_forge.build.plugins.interface import Plugin
from .cache import BuildCache
from .models import BuildArtifact, SourceFile, content_hash

logger = logging.getLogger(__name__)


class TransformRunner:
    """Runs plugins. Safe to call from worker threads: it mutates no shared state."""

    def __init__(self, cache: Optional[BuildCache] = None):
        self.cache = cache

    def run(self, source_file: SourceFile, plugin: Plugin) -> BuildArtifact:
        """
        Transform a source file with a plugin.

        The artifact is stamped with the hash of exactly the bytes handed to
        the plugin, so it is current for the file's content at read time.
        Plugins whose compiler reads the file from disk check afterwards that
        it still holds those bytes.

        Args:
            source_file: File to transform (a copy owned by the caller)
            plugin: Plugin claiming the file's extension

        Returns:
            BuildArtifact; check ``is_error`` before using its content
        """
        path = source_file.path
        try:
            with open(path, 'rb') as f:
                content = f.read()
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
            return BuildArtifact(
                source=path,
                source_hash=source_file.content_hash or '',
                plugin=plugin.name,
                ok=False,
                diagnostic=f"Cannot read {path}: {e}",
            )

        digest = content_hash(content)
        if self.cache is not None:
            cached = self.cache.lookup(plugin.name, path, digest)
            if cached is not None:
                return cached

        snapshot = source_file.model_copy(update={'content_hash': digest})
        try:
            result = plugin.transform(snapshot, content)
        except PluginExecutionError as e:
            logger.error(f"{plugin.name} failed on {path}: {e}")
            return BuildArtifact(
                source=path, source_hash=digest, plugin=plugin.name, ok=False, diagnostic=e.diagnostic
            )
        except Exception as e:
            # plugin bugs surface as error artifacts like compile errors
            logger.exception(f"{plugin.name} crashed on {path}")
            return BuildArtifact(
                source=path, source_hash=digest, plugin=plugin.name, ok=False,
                diagnostic=f"{type(e).__name__}: {e}",
            )

        logger.debug(f"Transformed {path} with {plugin.name} ({len(result.content)} bytes)")
        return BuildArtifact(
            source=path,
            source_hash=digest,
            plugin=plugin.name,
            content=result.content,
            dependencies=tuple(result.dependencies),
        )
