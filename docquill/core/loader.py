import sys
import importlib.util
import logging
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

# Constants
PLUGIN_FILE_NAME = "plugin.py"
PROD_PLUGIN_DIR_NAME = "plugins"

def get_base_path() -> Path:
    """
    Directory of the docquill package.
    Handles PyInstaller's sys._MEIPASS logic.
    """
    if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
        return Path(sys._MEIPASS) / "docquill"
    return Path(__file__).resolve().parent.parent

def get_plugin_paths(extra_dirs: Optional[Iterable] = None) -> List[Path]:
    """
    Return a list of directories to scan for plugins: the bundled ones first,
    then any user directories from the settings.
    """
    paths = []

    bundled = get_base_path() / PROD_PLUGIN_DIR_NAME
    if bundled.is_dir():
        paths.append(bundled)

    for extra in extra_dirs or []:
        extra_path = Path(extra).expanduser()
        if extra_path.is_dir() and extra_path not in paths:
            paths.append(extra_path)
        else:
            logger.warning(f"Plugin directory not found: {extra_path}")

    logger.debug(f"Plugin scan paths: {[str(p) for p in paths]}")
    return paths

def load_plugins_from_path(plugin_dir: Path, registry_instance=None) -> int:
    """
    Scan a specific directory for plugins and load them.
    Expects structure: plugin_dir/my_plugin/plugin.py
    Returns the number of plugins loaded.
    """
    plugin_dir = Path(plugin_dir)
    if not plugin_dir.exists():
        logger.warning(f"Plugin directory not found: {plugin_dir}")
        return 0

    logger.info(f"Scanning for plugins in: {plugin_dir}")

    count = 0
    for item in sorted(plugin_dir.iterdir()):
        plugin_path = item / PLUGIN_FILE_NAME
        if item.is_dir() and plugin_path.exists():
            if load_single_plugin(item.name, plugin_path, registry_instance):
                count += 1
    logger.info(f"Scanned {plugin_dir}, loaded {count} plugins.")
    return count

def load_single_plugin(name: str, path: Path, registry_instance=None) -> bool:
    """
    Loads a single plugin from a path, injecting dependencies to ensure
    it shares the same registry and class definitions as the core app.
    """
    try:
        logger.info(f"Loading plugin '{name}' from {path}")

        # Use a unique name for the module based on file path to avoid conflicts
        module_name = f"docquill_plugin_{name}"
        spec = importlib.util.spec_from_file_location(module_name, str(path))
        if not (spec and spec.loader):
            logger.error(f"Loader: Could not build import spec for {path}")
            return False

        module = importlib.util.module_from_spec(spec)

        from docquill.features.registry import Feature, FeatureType, FeatureState, PluginRegistry

        # If injected from app, use it. Otherwise fall back to Singleton.
        actual_registry = registry_instance if registry_instance else PluginRegistry()

        # Inject classes directly into module namespace
        module.Feature = Feature
        module.FeatureType = FeatureType
        module.FeatureState = FeatureState
        module.PluginRegistry = lambda: actual_registry

        spec.loader.exec_module(module)
        logger.info(f"Successfully executed module: {name}")

        # Verify and Register Features
        if hasattr(module, 'get_features'):
            features = module.get_features()
            if not features:
                logger.warning(f"Plugin {name} returned no features.")
            for f in features or []:
                try:
                    f.meta.setdefault('plugin_id', name)
                    actual_registry.register(f)
                    logger.info(f"Loader: Registered feature '{f.name}' (Type: {f.type}) from {name}. Meta: {f.meta}")
                except Exception as reg_err:
                    logger.error(f"Loader: Failed to register feature {getattr(f, 'name', f)} from {name}: {reg_err}")
        else:
            logger.info(f"Loader: No get_features() found in {name}")

        # Check for Blueprint
        if hasattr(module, 'blueprint'):
            try:
                actual_registry.register_blueprint(module.blueprint)
                logger.info(f"Loader: Registered blueprint from {name}")
            except Exception as bp_err:
                logger.error(f"Loader: Failed to register blueprint from {name}: {bp_err}")
        return True

    except Exception as e:
        logger.error(f"Failed to load plugin '{name}': {e}", exc_info=True)
        return False

def load_plugins(registry_instance=None, extra_dirs: Optional[Iterable] = None) -> int:
    """
    Main entry point to discover and load all available plugins.
    """
    total = 0
    for path in get_plugin_paths(extra_dirs):
        total += load_plugins_from_path(path, registry_instance)
    logger.info(f"Loader: {total} plugins loaded")
    return total
