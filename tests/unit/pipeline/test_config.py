"""Tests for loading and validating the pipeline config file."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from asset_forge.build.config import ConfigurationError, load_config, parse_config
from asset_forge.build.config.loading import CONFIG_ENV_VAR
from .base import TEST_BASE_IDENTIFIER

BRUNCH_STYLE = """\
config:
  paths:
    watched: [app]
    public: public
  files:
    javascripts:
      joinTo: js/app.js
    stylesheets:
      joinTo: css/app.css
  plugins:
    elmBrunch:
      mainModules: [app/elm/Main.elm]
      outputFolder: public/js
    sassBrunch:
"""


class TestParseConfig(unittest.TestCase):

    def test_defaults(self):
        config = parse_config({'files': {'javascripts': {'joinTo': 'js/app.js'}}}, root=Path('/project'))
        self.assertEqual(config.watched_paths(), [Path('/project/app')])
        self.assertEqual(config.public_path(), Path('/project/public'))
        self.assertEqual(config.debounce, 0.3)
        self.assertEqual(config.workers, 4)
        self.assertFalse(config.notifications)
        self.assertIsNone(config.cache.directory)

    def test_join_to_string_covers_everything(self):
        config = parse_config({'files': {'javascripts': {'joinTo': 'js/app.js'}}})
        self.assertEqual(config.files['javascripts'].outputs(), {'js/app.js': ['**/*']})

    def test_join_to_mapping(self):
        config = parse_config({'files': {'javascripts': {'joinTo': {
            'js/vendor.js': 'vendor', 'js/app.js': ['app/a', 'app/b'],
        }}}})
        self.assertEqual(config.files['javascripts'].outputs(), {
            'js/vendor.js': ['vendor'], 'js/app.js': ['app/a', 'app/b'],
        })

    def test_unknown_key_is_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            parse_config({'files': {'javascripts': {'joinTo': 'js/app.js'}}, 'optimize': True})
        self.assertIn('optimize', str(ctx.exception))

    def test_missing_join_to_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_config({'files': {'javascripts': {}}})

    def test_no_file_groups_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_config({'paths': {'watched': ['app']}})

    def test_empty_watched_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_config({'paths': {'watched': []}, 'files': {'js': {'joinTo': 'js/app.js'}}})

    def test_non_mapping_is_rejected(self):
        for data in (None, ['files'], 'files'):
            with self.subTest(data=data):
                with self.assertRaises(ConfigurationError):
                    parse_config(data)

    def test_errors_carry_guidance(self):
        with self.assertRaises(ConfigurationError) as ctx:
            parse_config({'files': {}}, source='asset-forge.yaml')
        self.assertTrue(ctx.exception.guidance)
        self.assertEqual(ctx.exception.path, 'asset-forge.yaml')


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.root = Path(tempfile.mkdtemp(prefix=TEST_BASE_IDENTIFIER)).resolve()
        self.addCleanup(shutil.rmtree, self.root, ignore_errors=True)

    def write_config(self, text, name='asset-forge.yaml'):
        path = self.root / name
        path.write_text(text)
        return path

    def test_brunch_style_file(self):
        path = self.write_config(BRUNCH_STYLE)

        config = load_config(path)

        self.assertEqual(config.root, self.root)
        self.assertEqual(sorted(config.files), ['javascripts', 'stylesheets'])
        self.assertEqual(config.plugins['sassBrunch'], {})
        self.assertEqual(config.plugins['elmBrunch']['outputFolder'], 'public/js')

    def test_environment_variable(self):
        path = self.write_config(BRUNCH_STYLE, name='custom.yaml')
        with patch.dict(os.environ, {CONFIG_ENV_VAR: str(path)}):
            config = load_config()
        self.assertEqual(config.root, self.root)

    def test_default_name_in_working_directory(self):
        self.write_config(BRUNCH_STYLE)
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(CONFIG_ENV_VAR, None)
            with patch('pathlib.Path.cwd', return_value=self.root):
                config = load_config()
        self.assertIn('javascripts', config.files)

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_config(self.root / 'absent.yaml')

    def test_invalid_yaml(self):
        path = self.write_config('files: [unclosed')
        with self.assertRaises(ConfigurationError) as ctx:
            load_config(path)
        self.assertIn('YAML', str(ctx.exception))

    def test_empty_file(self):
        path = self.write_config('')
        with self.assertRaises(ConfigurationError):
            load_config(path)
