from asset_forge.build.config.exceptions import ConfigurationError, PluginNotFoundError
from asset_forge.build.plugins import PluginRegistry, build_registry, create_plugin, get_plugin_class
from asset_forge.build.plugins.elm import ElmPlugin
from asset_forge.build.plugins.passthrough import PassthroughPlugin
from asset_forge.build.plugins.sass import SassPlugin
from .base import BasePipelineTest, UpperPlugin


class TestPluginRegistry(BasePipelineTest):

    def setUp(self):
        super().setUp()
        self.registry = PluginRegistry()
        self.plugin = UpperPlugin(root=self.root)

    def test_lookup_normalizes_extensions(self):
        self.registry.register('UP', self.plugin)
        self.assertIs(self.registry.lookup('.up'), self.plugin)
        self.assertTrue(self.registry.covers(self.root / 'x.up'))

    def test_registering_the_same_plugin_twice_is_a_no_op(self):
        self.registry.register_plugin(self.plugin)
        self.registry.register_plugin(self.plugin)
        self.assertEqual(self.registry.plugins(), [self.plugin])

    def test_conflicting_registration_is_rejected(self):
        self.registry.register_plugin(self.plugin)
        with self.assertRaises(ConfigurationError):
            self.registry.register('.up', UpperPlugin(root=self.root, name='other'))

    def test_lookup_of_unclaimed_extension(self):
        with self.assertRaises(PluginNotFoundError) as ctx:
            self.registry.lookup('.txt')
        self.assertEqual(ctx.exception.extension, '.txt')
        self.assertIsNone(self.registry.find('.txt'))
        self.assertIsNone(self.registry.find(''))

    def test_frozen_registry_rejects_registration(self):
        self.registry.freeze()
        with self.assertRaises(ConfigurationError):
            self.registry.register_plugin(self.plugin)


class TestPluginFactory(BasePipelineTest):

    def test_config_names_map_to_classes(self):
        self.assertIs(get_plugin_class('elmBrunch'), ElmPlugin)
        self.assertIs(get_plugin_class('sass'), SassPlugin)
        self.assertIs(get_plugin_class('passthrough'), PassthroughPlugin)

    def test_dotted_name_is_a_class_path(self):
        self.assertIs(get_plugin_class('tests.unit.pipeline.base.UpperPlugin'), UpperPlugin)

    def test_unknown_plugin(self):
        with self.assertRaises(ConfigurationError) as ctx:
            get_plugin_class('coffee')
        self.assertIn('Available', str(ctx.exception))

    def test_class_path_must_be_a_plugin(self):
        with self.assertRaises(ConfigurationError):
            get_plugin_class('pathlib.Path')
        with self.assertRaises(ConfigurationError):
            get_plugin_class('asset_forge.nowhere.Plugin')

    def test_bad_options_are_configuration_errors(self):
        with self.assertRaises(ConfigurationError):
            create_plugin('sass', {'mode': 'python'}, self.root)

    def test_build_registry_from_config(self):
        config = self.make_config(plugins={'elmBrunch': {'mainModules': ['app/Main.elm']}, 'sassBrunch': None})

        registry = build_registry(config)

        self.assertIsInstance(registry.lookup('.elm'), ElmPlugin)
        self.assertIsInstance(registry.lookup('.scss'), SassPlugin)
        self.assertIsInstance(registry.lookup('.js'), PassthroughPlugin)
        self.assertIsInstance(registry.lookup('.css'), PassthroughPlugin)
        self.assertEqual(registry.lookup('.elm').name, 'elmBrunch')

    def test_configured_plugin_wins_over_default(self):
        config = self.make_config(plugins={'tests.unit.pipeline.base.UpperPlugin': {}})
        registry = build_registry(config)
        self.assertIsInstance(registry.lookup('.up'), UpperPlugin)
        self.assertEqual(len(registry.plugins()), 2)
