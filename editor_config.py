"""
Editor configuration.
Optional YAML file overriding timing, display and export settings.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from render_pipeline import PreviewStyle, DEFAULT_EXPORT_FORMAT, DEFAULT_EXPORT_QUALITY, PLACEHOLDER_TEXT

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MASK_EDITOR_CONFIG"
DEFAULT_CONFIG_NAME = "config.yaml"


@dataclass(frozen=True)
class EditorConfig:
    settle_delay_ms: int = 200  # debounce before transform_changed fires
    frame_interval_ms: int = 0  # 0 = one refresh interval of the primary screen
    max_display_size: int = 600
    display_margin: int = 100
    fallback_scale: float = 0.5
    export_format: str = DEFAULT_EXPORT_FORMAT
    export_quality: int = DEFAULT_EXPORT_QUALITY
    preview_background: str = "#f3f4f6"
    frame_color: str = "#e5e7eb"
    guide_color: str = "#9ca3af"
    placeholder_text: str = PLACEHOLDER_TEXT

    def preview_style(self) -> PreviewStyle:
        return PreviewStyle(
            background=self.preview_background,
            frame_color=self.frame_color,
            guide_color=self.guide_color,
            placeholder_text=self.placeholder_text,
        )


def get_config_path(explicit: Optional[Union[str, Path]] = None) -> Path:
    """Explicit path, then $MASK_EDITOR_CONFIG, then config.yaml beside this module."""
    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parent / DEFAULT_CONFIG_NAME


def load_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping. Empty files give an empty dict."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return payload


def load_config(path: Optional[Union[str, Path]] = None) -> EditorConfig:
    """Load the editor config; a missing file gives the defaults."""
    config_path = get_config_path(path)
    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return EditorConfig()

    cfg = load_yaml(config_path)
    section = cfg.get("editor", cfg)
    if not isinstance(section, dict):
        raise ValueError(f"'editor' section must be a mapping: {config_path}")

    known = {f.name: f for f in fields(EditorConfig)}
    overrides = {}
    for key, value in section.items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s' in %s", key, config_path)
            continue
        overrides[key] = _coerce(key, value, type(getattr(EditorConfig(), key)))

    config = replace(EditorConfig(), **overrides)
    logger.info("Loaded editor config from %s", config_path)
    return config


def _coerce(key: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Config key '{key}' expects {kind.__name__}, got {value!r}") from e
