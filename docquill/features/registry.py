from enum import Enum, auto
from typing import Callable, List, Optional, Any, Dict
import logging

logger = logging.getLogger(__name__)

class FeatureState(Enum):
    STANDARD = auto()
    EXPERIMENTAL = auto()

class FeatureType(Enum):
    EXPORT_HANDLER = auto() # content (str) -> file bytes
    UI_EXTENSION = auto() # Editor surfaces, HTTP endpoints

class Feature:
    def __init__(self, name: str, handler: Optional[Callable[[str], Any]], state: FeatureState, feature_type: FeatureType = FeatureType.EXPORT_HANDLER, meta: Dict = None):
        self.name = name
        self.handler = handler
        self.state = state
        self.type = feature_type
        self.meta = meta or {}

    def __repr__(self):
        return f"<Feature {self.name} ({self.type.name}, {self.state.name})>"

class PluginRegistry:
    """
    Singleton Registry to hold all discovered plugin features and blueprints.
    Ensure shared state across the application.
    """
    _instance = None
    _plugins = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(PluginRegistry, cls).__new__(cls)
            cls._instance._plugins = []
            cls._instance._blueprints = []
        return cls._instance

    def register(self, plugin_or_feature: Any):
        """Register a plugin module or feature."""
        # Avoid duplicate registration
        if plugin_or_feature not in self._plugins:
            self._plugins.append(plugin_or_feature)
            logger.info(f"PluginRegistry: Registered {plugin_or_feature}")

    def get_all_plugins(self) -> List[Any]:
        return list(self._plugins)

    def register_blueprint(self, bp: Any):
        """Register a Flask Blueprint."""
        if bp not in self._blueprints:
            self._blueprints.append(bp)
            logger.info(f"PluginRegistry: Registered blueprint {bp.name}")

    def get_blueprints(self) -> List[Any]:
        return list(self._blueprints)

    def register_blueprints(self, app):
        """Register all collected blueprints with the Flask app."""
        for bp in self._blueprints:
            if bp.name in app.blueprints:
                continue
            try:
                app.register_blueprint(bp)
                logger.info(f"Registered blueprint: {bp.name}")
            except Exception as e:
                logger.error(f"Failed to register blueprint {bp.name}: {e}")

    def initialize_all(self):
        """
        Trigger initialization logic on all plugins that have it.
        """
        for plugin in self._plugins:
            if hasattr(plugin, 'initialize'):
                try:
                    plugin.initialize()
                except Exception as e:
                    logger.error(f"Failed to initialize plugin {plugin}: {e}")

class FeatureManager:
    """
    Facade that aggregates core features and the ones pulled from the PluginRegistry.
    """
    def __init__(self, registry: Optional[Any] = None, enable_experimental: bool = False):
        self._core: List[Feature] = []
        self._features: List[Feature] = []
        self._registry = registry
        self.enable_experimental = enable_experimental

    def register(self, feature: Feature):
        """Register a feature manually (Core features)."""
        self._core.append(feature)
        self._features.append(feature)

    def refresh(self):
        """
        Re-scan registry and rebuild features list. Plugin features override core ones by name.
        """
        self._features = list(self._core)
        if not self._registry:
            logger.warning("FeatureManager: No registry attached, skipping refresh.")
            return

        for plugin in self._registry.get_all_plugins():
            # Duck typing check instead of strict isinstance to survive import/reload cycles
            if not (hasattr(plugin, 'name') and hasattr(plugin, 'type') and hasattr(plugin, 'handler')):
                continue

            existing_idx = next((i for i, f in enumerate(self._features) if f.name == plugin.name), -1)
            if existing_idx >= 0:
                self._features[existing_idx] = plugin
                logger.warning(f"FeatureManager: Overwrote existing feature '{plugin.name}' (State: {plugin.state})")
            else:
                self._features.append(plugin)
                logger.debug(f"Registered plugin feature (duck-typed): {plugin.name}")

        logger.info(f"FeatureManager: Loaded/Updated features. Total: {len(self._features)}")

    def is_feature_installed(self, feature: Feature) -> bool:
        """
        Centralized validation for feature availability.
        Checks the 'installed' meta flag and the experimental toggle.
        """
        installed = feature.meta.get('installed', True)
        if not installed:
            logger.debug(f"FeatureManager: BLOCKED access to uninstalled feature '{feature.name}'")
            return False
        if feature.state == FeatureState.EXPERIMENTAL and not self.enable_experimental:
            logger.debug(f"FeatureManager: BLOCKED access to experimental feature '{feature.name}'")
            return False
        return True

    def get_export_handler(self, format_ext: str) -> Optional[Callable]:
        """
        Retrieve a registered export handler for a specific format extension.
        """
        logger.debug(f"FeatureManager: Looking for export handler for '{format_ext}'...")

        for feature in self._features:
            if "EXPORT_HANDLER" not in str(feature.type):
                continue

            ext = getattr(feature, 'meta', {}).get('extension')
            if ext == format_ext or feature.name in (format_ext, f"{format_ext}_export"):
                if self.is_feature_installed(feature):
                    logger.info(f"FeatureManager: Found and Verified handler for {format_ext} ({feature.name})")
                    return feature.handler
                logger.warning(f"FeatureManager: Found handler for {format_ext} ({feature.name}) but it is NOT INSTALLED.")
                return None

        logger.warning(f"FeatureManager: No handler found for {format_ext}. Available: {[f.name for f in self._features]}")
        return None

    def get_export_formats(self) -> List[str]:
        formats = []
        for feature in self.get_features_by_type(FeatureType.EXPORT_HANDLER):
            ext = feature.meta.get('extension')
            if ext and ext not in formats and self.is_feature_installed(feature):
                formats.append(ext)
        return formats

    def get_features_by_type(self, feature_type: FeatureType) -> List[Feature]:
        """
        Retrieve all features of a specific type.
        """
        features = [f for f in self._features if f.type == feature_type]
        logger.debug(f"FeatureManager: Found {len(features)} features of type {feature_type}")
        return features
