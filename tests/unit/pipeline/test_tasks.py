"""Tests for the invoke tasks behind the asset-forge command."""

import io
from unittest.mock import patch

from invoke import Context
from invoke.exceptions import Exit

from asset_forge.build.tasks.build import build, status
from .base import BasePipelineTest

CONFIG = """\
paths:
  watched: [app]
files:
  javascripts:
    joinTo: js/app.js
plugins:
  tests.unit.pipeline.base.UpperPlugin:
"""


class TestBuildTask(BasePipelineTest):

    def setUp(self):
        super().setUp()
        self.config = self.write('asset-forge.yaml', CONFIG)
        self.write('app/a.js', 'var a;')
        self.up = self.write('app/b.up', 'b')

    def run_task(self, task, **kwargs):
        with patch('sys.stdout', new_callable=io.StringIO) as out, \
                patch('sys.stderr', new_callable=io.StringIO) as err:
            try:
                task(Context(), config=str(self.config), **kwargs)
            finally:
                self.stdout, self.stderr = out.getvalue(), err.getvalue()

    def test_build_writes_bundles(self):
        self.run_task(build)
        self.assertEqual(self.read_output('js/app.js'), b'var a;\nB\n')
        self.assertIn('app.js', self.stdout)

    def test_failed_bundle_exits_non_zero(self):
        self.up.write_text('FAIL')
        with self.assertRaises(Exit) as ctx:
            self.run_task(build)
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn('syntax error in b.up', self.stderr)
        self.assertFalse(self.output('js/app.js').exists())

    def test_configuration_error_prints_guidance(self):
        self.config = self.root / 'missing.yaml'
        with self.assertRaises(Exit) as ctx:
            self.run_task(build)
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn('Configuration error', self.stderr)

    def test_status_lists_bundle_sources(self):
        self.run_task(status)
        self.assertIn('UpperPlugin', self.stdout)
        self.assertIn(str(self.up), self.stdout)
        self.assertIn('[dirty]', self.stdout)
