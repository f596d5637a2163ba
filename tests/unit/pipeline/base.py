"""Base test class and fake plugins for pipeline unit tests."""

import shutil
import tempfile
import threading
import unittest
from pathlib import Path

from asset_forge.build.config.exceptions import PluginExecutionError
from asset_forge.build.config.loading import parse_config
from asset_forge.build.plugins.interface import Plugin
from asset_forge.build.plugins.passthrough import PassthroughPlugin
from asset_forge.build.plugins.registry import PluginRegistry
from asset_forge.run.pipeline.joiner import BundleJoiner
from asset_forge.run.pipeline.models import TransformResult
from asset_forge.run.pipeline.notifier import Notifier
from asset_forge.run.pipeline.orchestrator import BuildOrchestrator


# Directory name prefix for all temporary test projects
TEST_BASE_IDENTIFIER = "asset-forge-unit-testing-"


class UpperPlugin(Plugin):
    """Test plugin for '.up' files: uppercases content into JS.

    ``import name`` lines become dependencies on ``name.up`` next to the file,
    and any file containing FAIL raises a compile error.
    """

    extensions = ('.up',)
    output_extension = '.js'

    def __init__(self, options=None, root=None, name=None):
        super().__init__(options, root, name or 'upper')
        self.calls = []
        self._lock = threading.Lock()
        self.before_return = None

    def transform(self, source, content):
        with self._lock:
            self.calls.append((source.path, content))
        if self.before_return is not None:
            self.before_return(source, content)
        if b'FAIL' in content:
            raise PluginExecutionError(
                "compile error", path=str(source.path), plugin=self.name,
                diagnostic=f"syntax error in {source.path.name}",
            )
        dependencies = [
            source.path.parent / (line.split()[1].decode() + '.up')
            for line in content.splitlines()
            if line.startswith(b'import ')
        ]
        return TransformResult(content=content.upper(), dependencies=dependencies)

    def called_paths(self):
        with self._lock:
            return [path for path, _ in self.calls]


class CountingJoiner(BundleJoiner):
    """BundleJoiner that counts rebuild() calls per output."""

    def __init__(self):
        super().__init__()
        self.rebuilds = {}

    def rebuild(self, spec, artifacts):
        self.rebuilds[spec.output] = self.rebuilds.get(spec.output, 0) + 1
        return super().rebuild(spec, artifacts)


class BasePipelineTest(unittest.TestCase):
    """Creates a throwaway project directory with an ``app/`` source folder."""

    def setUp(self):
        self.root = Path(tempfile.mkdtemp(prefix=TEST_BASE_IDENTIFIER)).resolve()
        (self.root / 'app').mkdir()
        self.addCleanup(shutil.rmtree, self.root, ignore_errors=True)

    def write(self, relative, content):
        """Write a file under the project root and return its absolute path."""
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        path.write_bytes(content)
        return path

    def make_config(self, files=None, **extra):
        data = {
            'paths': {'watched': ['app']},
            'files': files or {
                'javascripts': {'joinTo': 'js/app.js'},
                'stylesheets': {'joinTo': 'css/app.css'},
            },
            'debounce': 0,
        }
        data.update(extra)
        return parse_config(data, root=self.root)

    def make_registry(self, *plugins):
        registry = PluginRegistry()
        for plugin in plugins:
            registry.register_plugin(plugin)
        registry.register_plugin(PassthroughPlugin(root=self.root))
        return registry

    def make_orchestrator(self, config=None, plugins=(), joiner=None):
        orchestrator = BuildOrchestrator(
            config or self.make_config(),
            self.make_registry(*plugins),
            joiner=joiner,
            notifier=Notifier(enabled=False),
        )
        self.addCleanup(orchestrator.close)
        return orchestrator

    def output(self, relative):
        return self.root / 'public' / relative

    def read_output(self, relative):
        return self.output(relative).read_bytes()
