import os
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Toolbar features, all enabled unless overridden
TOOLBAR_DEFAULTS: Mapping[str, bool] = MappingProxyType({
    'undoRedo': True,
    'fontSize': True,
    'fontFamily': True,
    'formatting': True,
    'colors': True,
    'alignment': True,
    'lists': True,
    'insert': True,
    'blocks': True,
    'table': True,
    'findReplace': True,
    'fullscreen': True,
    'export': True,
    'advanced': True,
})

# Surface command -> toolbar feature that exposes it
COMMAND_FEATURES: Mapping[str, str] = MappingProxyType({
    'undo': 'undoRedo',
    'redo': 'undoRedo',
    'fontSize': 'fontSize',
    'fontName': 'fontFamily',
    'bold': 'formatting',
    'italic': 'formatting',
    'underline': 'formatting',
    'strikethrough': 'formatting',
    'foreColor': 'colors',
    'backColor': 'colors',
    'hiliteColor': 'colors',
    'justifyLeft': 'alignment',
    'justifyCenter': 'alignment',
    'justifyRight': 'alignment',
    'justifyFull': 'alignment',
    'insertUnorderedList': 'lists',
    'insertOrderedList': 'lists',
    'createLink': 'insert',
    'insertImage': 'insert',
    'insertHorizontalRule': 'insert',
    'formatBlock': 'blocks',
    'insertTable': 'table',
    'subscript': 'advanced',
    'superscript': 'advanced',
    'indent': 'advanced',
    'outdent': 'advanced',
    'removeFormat': 'advanced',
    'insertHTML': 'advanced',
})

FONT_SIZES: Mapping[str, str] = MappingProxyType({
    '1': '8pt',
    '2': '10pt',
    '3': '12pt',
    '4': '14pt',
    '5': '18pt',
    '6': '24pt',
    '7': '36pt',
})
DEFAULT_FONT_SIZE = '3'

BLOCK_FORMATS: Mapping[str, str] = MappingProxyType({
    'p': 'Paragraph',
    'h1': 'Heading 1',
    'h2': 'Heading 2',
    'h3': 'Heading 3',
    'h4': 'Heading 4',
    'h5': 'Heading 5',
    'h6': 'Heading 6',
    'blockquote': 'Quote',
    'pre': 'Code Block',
})

ToolbarConfig = Mapping[str, bool]


def resolve_toolbar_config(overrides: Optional[Mapping[str, Any]] = None) -> ToolbarConfig:
    """
    Shallow-merge the defaults with caller overrides.
    Unknown keys are ignored; the result is read-only.
    """
    merged = dict(TOOLBAR_DEFAULTS)
    for key, value in (overrides or {}).items():
        if key in merged:
            merged[key] = bool(value)
        else:
            logger.debug(f"Toolbar: ignoring unknown feature key {key!r}")
    return MappingProxyType(merged)


def is_command_enabled(toolbar: ToolbarConfig, command: str) -> bool:
    """Commands without a toolbar feature are always available."""
    feature = COMMAND_FEATURES.get(command)
    if feature is None:
        return True
    return toolbar.get(feature, True)


# ---------------------------------------------------------------------------
# Editor configuration
# ---------------------------------------------------------------------------

@dataclass
class EditorConfig:
    initial_content: str = ''
    on_change: Optional[Callable[[str], None]] = None
    max_length: Optional[int] = None
    placeholder: str = 'Start typing...'
    height: str = '24rem'
    read_only: bool = False
    enable_spell_check: bool = True
    toolbar_config: Dict[str, bool] = field(default_factory=dict)
    show_status_bar: bool = True
    show_html_output: bool = False

    def __post_init__(self):
        if self.initial_content is None:
            self.initial_content = ''
        if not isinstance(self.initial_content, str):
            raise TypeError(f"initial_content must be a string, got {type(self.initial_content).__name__}")
        if not isinstance(self.toolbar_config, Mapping):
            raise TypeError(f"toolbar_config must be a mapping, got {type(self.toolbar_config).__name__}")
        if self.max_length is not None:
            if isinstance(self.max_length, bool) or int(self.max_length) <= 0:
                raise ValueError(f"max_length must be a positive integer, got {self.max_length!r}")
            self.max_length = int(self.max_length)

    @property
    def toolbar(self) -> ToolbarConfig:
        return resolve_toolbar_config(self.toolbar_config)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], defaults: Optional[Mapping[str, Any]] = None) -> "EditorConfig":
        """Build a config from a camelCase JSON payload, falling back to settings."""
        data = data or {}
        defaults = defaults or {}

        toolbar = dict(defaults.get('toolbar') or {})
        overrides = data.get('toolbarConfig') or {}
        if not isinstance(overrides, Mapping):
            raise TypeError("toolbarConfig must be an object")
        toolbar.update(overrides)

        return cls(
            initial_content=data.get('initialContent', ''),
            max_length=data.get('maxLength', defaults.get('max_length')),
            placeholder=data.get('placeholder', 'Start typing...'),
            height=data.get('height', '24rem'),
            read_only=bool(data.get('readOnly', defaults.get('read_only', False))),
            enable_spell_check=bool(data.get('enableSpellCheck', True)),
            toolbar_config=toolbar,
            show_status_bar=bool(data.get('showStatusBar', True)),
            show_html_output=bool(data.get('showHTMLOutput', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'maxLength': self.max_length,
            'placeholder': self.placeholder,
            'height': self.height,
            'readOnly': self.read_only,
            'enableSpellCheck': self.enable_spell_check,
            'toolbar': dict(self.toolbar),
            'showStatusBar': self.show_status_bar,
            'showHTMLOutput': self.show_html_output,
        }


# ---------------------------------------------------------------------------
# Settings file
# ---------------------------------------------------------------------------

CONFIG_ENV_VAR = 'DOCQUILL_CONFIG'
CONFIG_FILE_NAME = 'config.json'

DEFAULT_SETTINGS: Mapping[str, Any] = MappingProxyType({
    'max_length': None,
    'read_only': False,
    'toolbar': {},
    'log_dir': 'logs',
    'log_file': 'docquill.log',
    'debug': False,
    'plugin_dirs': [],
})


def get_settings_path(path: Optional[Path] = None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(os.path.abspath('.')) / CONFIG_FILE_NAME


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load settings, merged over the defaults. A broken file falls back to defaults."""
    settings = {key: (list(value) if isinstance(value, list) else
                      dict(value) if isinstance(value, dict) else value)
                for key, value in DEFAULT_SETTINGS.items()}
    config_file = get_settings_path(path)

    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                settings.update({k: v for k, v in data.items() if k in DEFAULT_SETTINGS})
            else:
                logger.error(f"Settings file {config_file} does not hold an object, using defaults")
        except Exception as e:
            logger.error(f"Failed to load settings from {config_file}: {e}")
    else:
        logger.debug(f"No settings file at {config_file}, using defaults")
    return settings


def save_settings(settings: Mapping[str, Any], path: Optional[Path] = None) -> bool:
    config_file = get_settings_path(path)
    try:
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(dict(settings), f, indent=2)
        logger.info(f"Settings saved to {config_file}")
        return True
    except Exception as e:
        logger.error(f"Failed to save settings: {e}")
        return False
