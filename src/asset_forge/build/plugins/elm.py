"""Elm plugin: compiles main modules to JavaScript with the ``elm`` executable.

Only main modules produce output. Every other module yields an empty artifact
that still reports its imports, so editing a helper module invalidates the
main modules built from it.
"""

import json
import logging
import re
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from asset_forge.build.config.exceptions import PluginExecutionError
from asset_forge.run.pipeline.models import SourceFile, TransformResult
from .interface import Plugin

logger = logging.getLogger(__name__)

IMPORT_RE = re.compile(rb'^import\s+([A-Z][A-Za-z0-9_]*(?:\.[A-Z][A-Za-z0-9_]*)*)', re.MULTILINE)


class ElmPlugin(Plugin):
    """Compile-to-JS plugin for ``.elm`` sources.

    Options (camelCase, as in the config file):
        mainModules: entry modules to compile; if absent every module is compiled
        outputFolder: if set, a copy of the compiled JS is also written here
        outputFile: file name of the compiled JS (default elm.js)
        executable: compiler binary (default elm)
        sourceDirectories: where imports are resolved; defaults to elm.json's
            source-directories, then the main modules' directories
    """

    extensions = ('.elm',)
    output_extension = '.js'

    def __init__(self, options=None, root=None, name=None):
        super().__init__(options, root, name or 'elm')
        self.main_modules = [self.resolve(p) for p in self.options.get('mainModules', [])]
        self.output_folder = self.options.get('outputFolder')
        self.output_file = self.options.get('outputFile', 'elm.js')
        self.executable = self.options.get('executable', 'elm')
        self.source_directories = self._source_directories()

    def _source_directories(self) -> List[Path]:
        configured = self.options.get('sourceDirectories')
        if configured:
            return [self.resolve(p) for p in configured]

        elm_json = self.root / 'elm.json'
        if elm_json.exists():
            try:
                with open(elm_json, 'r') as f:
                    dirs = json.load(f).get('source-directories', [])
                if dirs:
                    return [self.resolve(d) for d in dirs]
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read {elm_json}: {e}")

        dirs = []
        for main in self.main_modules:
            if main.parent not in dirs:
                dirs.append(main.parent)
        return dirs

    def is_main(self, path: Path) -> bool:
        if not self.main_modules:
            return True
        return Path(path) in self.main_modules

    def copy_target(self, path: Path) -> Optional[Path]:
        """Where the standalone compiled copy of a main module goes, if anywhere."""
        if not self.output_folder:
            return None
        name = self.output_file if len(self.main_modules) <= 1 else f"{Path(path).stem}.js"
        return self.resolve(self.output_folder) / name

    def ignored_paths(self) -> List[Path]:
        # The copies land in outputFolder, which is often inside a watched path
        if not self.output_folder:
            return []
        targets = [self.copy_target(m) for m in self.main_modules] or [self.resolve(self.output_folder) / self.output_file]
        return targets

    def find_imports(self, source: Path, content: bytes) -> List[Path]:
        """Resolve ``import`` lines to module files under the source directories.

        Package imports (Html, Browser, ...) don't resolve to a file and are skipped.
        """
        search = list(self.source_directories) or [source.parent]
        found = []
        for match in IMPORT_RE.finditer(content):
            relative = Path(*match.group(1).decode('ascii').split('.')).with_suffix('.elm')
            for directory in search:
                candidate = directory / relative
                if candidate.is_file():
                    if candidate not in found:
                        found.append(candidate)
                    break
        return found

    @staticmethod
    def _read(path: Path) -> Optional[bytes]:
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError:
            return None

    def compile(self, path: Path) -> bytes:
        with tempfile.TemporaryDirectory(prefix='asset-forge-elm-') as tmp:
            output = Path(tmp) / self.output_file
            cmd = [self.executable, 'make', str(path), f'--output={output}']
            logger.debug(f"Running: {' '.join(cmd)}")
            try:
                result = subprocess.run(cmd, cwd=self.root, capture_output=True, text=True)
            except FileNotFoundError as e:
                raise PluginExecutionError(
                    f"Elm compiler '{self.executable}' not found", path=str(path), plugin=self.name
                ) from e
            if result.returncode != 0:
                raise PluginExecutionError(
                    f"elm make failed for {path.name}",
                    path=str(path),
                    plugin=self.name,
                    diagnostic=(result.stderr or result.stdout).strip(),
                )
            with open(output, 'rb') as f:
                return f.read()

    def transform(self, source: SourceFile, content: bytes) -> TransformResult:
        dependencies = self.find_imports(source.path, content)
        if not self.is_main(source.path):
            return TransformResult(dependencies=dependencies)

        compiled = self.compile(source.path)
        if self._read(source.path) != content:
            # elm make reads the file itself; the output must match the bytes the runner hashed
            raise PluginExecutionError(
                f"{source.path.name} changed while compiling",
                path=str(source.path),
                plugin=self.name,
                diagnostic=f"{source.path} changed during elm make; it will be rebuilt on the next change",
            )
        target = self.copy_target(source.path)
        if target is not None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'wb') as f:
                f.write(compiled)
            logger.debug(f"Wrote standalone copy to {target}")
        return TransformResult(content=compiled, dependencies=dependencies)
