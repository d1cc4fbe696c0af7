import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from docquill.core.exporters import core_export_features
from docquill.features.registry import Feature, FeatureManager, FeatureState, FeatureType, PluginRegistry


def upper_export(content):
    return content.upper().encode('utf-8')


class TestPluginRegistry(unittest.TestCase):
    def setUp(self):
        # Reset singleton state
        PluginRegistry._instance = None
        self.registry = PluginRegistry()

    def tearDown(self):
        PluginRegistry._instance = None

    def test_singleton_behavior(self):
        self.assertIs(PluginRegistry(), PluginRegistry())

    def test_register_is_idempotent(self):
        feature = Feature("upper_export", upper_export, FeatureState.STANDARD)
        self.registry.register(feature)
        self.registry.register(feature)
        self.assertEqual(self.registry.get_all_plugins(), [feature])

    def test_initialize_all_skips_failures(self):
        class Good:
            initialized = False

            def initialize(self):
                self.initialized = True

        class Broken:
            def initialize(self):
                raise RuntimeError("boom")

        good = Good()
        self.registry.register(Broken())
        self.registry.register(good)
        self.registry.initialize_all()
        self.assertTrue(good.initialized)


class TestFeatureManager(unittest.TestCase):
    def setUp(self):
        PluginRegistry._instance = None
        self.registry = PluginRegistry()
        self.features = FeatureManager(self.registry)
        for feature in core_export_features():
            self.features.register(feature)

    def tearDown(self):
        PluginRegistry._instance = None

    def test_core_handlers(self):
        self.assertIsNotNone(self.features.get_export_handler('html'))
        self.assertIsNotNone(self.features.get_export_handler('txt'))
        self.assertIsNone(self.features.get_export_handler('docx'))
        self.assertEqual(self.features.get_export_formats(), ['html', 'txt'])

    def test_plugin_feature_added_on_refresh(self):
        self.registry.register(Feature("upper_export", upper_export, FeatureState.STANDARD,
                                       meta={'extension': 'upper'}))
        self.assertIsNone(self.features.get_export_handler('upper'))
        self.features.refresh()
        self.assertIs(self.features.get_export_handler('upper'), upper_export)

    def test_plugin_overrides_core_feature_by_name(self):
        self.registry.register(Feature("txt_export", upper_export, FeatureState.STANDARD,
                                       meta={'extension': 'txt'}))
        self.features.refresh()
        self.assertIs(self.features.get_export_handler('txt'), upper_export)

    def test_uninstalled_feature_is_blocked(self):
        self.registry.register(Feature("upper_export", upper_export, FeatureState.STANDARD,
                                       meta={'extension': 'upper', 'installed': False}))
        self.features.refresh()
        self.assertIsNone(self.features.get_export_handler('upper'))
        self.assertNotIn('upper', self.features.get_export_formats())

    def test_experimental_feature_needs_toggle(self):
        self.registry.register(Feature("upper_export", upper_export, FeatureState.EXPERIMENTAL,
                                       meta={'extension': 'upper'}))
        self.features.refresh()
        self.assertIsNone(self.features.get_export_handler('upper'))
        self.features.enable_experimental = True
        self.assertIs(self.features.get_export_handler('upper'), upper_export)

    def test_features_by_type(self):
        self.registry.register(Feature("panel", None, FeatureState.STANDARD, FeatureType.UI_EXTENSION))
        self.features.refresh()
        names = [f.name for f in self.features.get_features_by_type(FeatureType.UI_EXTENSION)]
        self.assertEqual(names, ['panel'])


if __name__ == '__main__':
    unittest.main()
