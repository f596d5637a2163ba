"""
Abstract interface for transform plugins.

Defines the contract every asset-type plugin implements. Plugins are built
once from configuration and are immutable afterwards.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from asset_forge.run.pipeline.models import SourceFile, TransformResult


class Plugin(ABC):
    """Abstract base class for transform plugins."""

    #: Extensions this plugin claims, with leading dot.
    extensions: Tuple[str, ...] = ()

    #: Extension of the transformed output; decides which bundles a file can join.
    output_extension: str = ''

    def __init__(self, options: Optional[Dict[str, Any]] = None, root: Optional[Path] = None,
                 name: Optional[str] = None):
        """
        Args:
            options: The plugin's 'plugins.<name>' block, passed through verbatim
            root: Project root that relative option paths are resolved against
            name: Configured plugin name (defaults to the class name)
        """
        self.options = dict(options or {})
        self.root = Path(root) if root is not None else Path.cwd()
        self.name = name or type(self).__name__

    def resolve(self, path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root / path

    def output_extension_for(self, path: Path) -> str:
        """Extension the transformed form of ``path`` will have."""
        return self.output_extension

    def ignored_paths(self) -> List[Path]:
        """Paths the watcher must not report, e.g. files the plugin writes itself."""
        return []

    @abstractmethod
    def transform(self, source: SourceFile, content: bytes) -> TransformResult:
        """Transform one source file.

        Args:
            source: The file being transformed
            content: Its bytes, as read by the transform runner

        Returns:
            TransformResult with output bytes and the files this source depends on

        Raises:
            PluginExecutionError: If the underlying compiler reports an error
        """
        pass

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} {list(self.extensions)} -> {self.output_extension or '*'}>"
