"""Sass plugin: compiles ``.scss``/``.sass`` to CSS with an external compiler."""

import logging
import re
import subprocess
from pathlib import Path
from typing import List

from asset_forge.build.config.exceptions import ConfigurationError, PluginExecutionError
from asset_forge.run.pipeline.models import SourceFile, TransformResult
from .interface import Plugin

logger = logging.getLogger(__name__)

DIRECTIVE_RE = re.compile(rb'@(?:import|use|forward)\s+([^;]+);')
QUOTED_RE = re.compile(rb'["\']([^"\']+)["\']')

MODES = {
    # mode: (default executable, read-stdin flag)
    'native': ('sass', '--stdin'),
    'ruby': ('sass', '--stdin'),
}


class SassPlugin(Plugin):
    """CSS-preprocessor plugin.

    Options:
        mode: 'native' (dart-sass/libsass CLI) or 'ruby'
        executable: override the compiler binary
        includePaths: extra load paths for imports

    Partials (``_name.scss``) are never compiled on their own; they only
    contribute dependency edges.
    """

    extensions = ('.scss', '.sass')
    output_extension = '.css'

    def __init__(self, options=None, root=None, name=None):
        super().__init__(options, root, name or 'sass')
        self.mode = self.options.get('mode', 'native')
        if self.mode not in MODES:
            raise ConfigurationError(
                f"Unknown sass mode '{self.mode}' (expected one of {', '.join(MODES)})"
            )
        default_executable, self.stdin_flag = MODES[self.mode]
        self.executable = self.options.get('executable', default_executable)
        self.include_paths = [self.resolve(p) for p in self.options.get('includePaths', [])]

    @staticmethod
    def is_partial(path: Path) -> bool:
        return Path(path).name.startswith('_')

    def _candidates(self, base: Path, target: str) -> List[Path]:
        target_path = Path(target)
        names = []
        if target_path.suffix in self.extensions:
            names = [target_path, target_path.with_name('_' + target_path.name)]
        else:
            for ext in self.extensions:
                names.append(target_path.with_name(target_path.name + ext))
                names.append(target_path.with_name('_' + target_path.name + ext))
                names.append(target_path / f'_index{ext}')
        return [base / name for name in names]

    def find_imports(self, source: Path, content: bytes) -> List[Path]:
        """Resolve @import/@use/@forward targets to local files."""
        found = []
        for directive in DIRECTIVE_RE.finditer(content):
            for quoted in QUOTED_RE.finditer(directive.group(1)):
                target = quoted.group(1).decode('utf-8', errors='replace')
                if target.startswith(('sass:', 'http://', 'https://', '//')) or target.endswith('.css'):
                    continue
                for base in [source.parent] + self.include_paths:
                    match = next((c for c in self._candidates(base, target) if c.is_file()), None)
                    if match is not None:
                        if match not in found:
                            found.append(match)
                        break
        return found

    def command(self, path: Path) -> List[str]:
        cmd = [self.executable, self.stdin_flag]
        # stdin defaults to SCSS for dart-sass and to the indented syntax for ruby sass
        if self.mode == 'native' and path.suffix == '.sass':
            cmd.append('--indented')
        elif self.mode == 'ruby' and path.suffix == '.scss':
            cmd.append('--scss')
        for directory in [path.parent] + self.include_paths:
            cmd.extend(['-I', str(directory)])
        return cmd

    def transform(self, source: SourceFile, content: bytes) -> TransformResult:
        dependencies = self.find_imports(source.path, content)
        if self.is_partial(source.path):
            return TransformResult(dependencies=dependencies)

        cmd = self.command(source.path)
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, input=content, cwd=self.root, capture_output=True)
        except FileNotFoundError as e:
            raise PluginExecutionError(
                f"Sass compiler '{self.executable}' not found", path=str(source.path), plugin=self.name
            ) from e
        if result.returncode != 0:
            raise PluginExecutionError(
                f"sass failed for {source.path.name}",
                path=str(source.path),
                plugin=self.name,
                diagnostic=result.stderr.decode('utf-8', errors='replace').strip(),
            )
        return TransformResult(content=result.stdout, dependencies=dependencies)
