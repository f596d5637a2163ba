"""Raw passthrough plugin: the file's bytes are its artifact."""

from pathlib import Path

from asset_forge.run.pipeline.models import SourceFile, TransformResult
from .interface import Plugin


class PassthroughPlugin(Plugin):
    """Copies files into bundles untransformed.

    Options:
        extensions: extensions to claim (default ['.js', '.css'])
    """

    def __init__(self, options=None, root=None, name=None):
        super().__init__(options, root, name or 'passthrough')
        extensions = self.options.get('extensions', ['.js', '.css'])
        self.extensions = tuple(e if e.startswith('.') else f'.{e}' for e in extensions)

    def output_extension_for(self, path: Path) -> str:
        return Path(path).suffix.lower()

    def transform(self, source: SourceFile, content: bytes) -> TransformResult:
        return TransformResult(content=content)
