"""
Logging Configuration
Sets up console and optional file logging for the editor modules.
"""
import logging
import sys
from typing import Optional

# Module loggers use logging.getLogger(__name__) on flat module names
EDITOR_LOGGERS = (
    "mask_editor",
    "editor_session",
    "editor_config",
    "render_pipeline",
    "image_source",
    "transform_state",
    "drag_controller",
    "scheduling",
    "mask_editor_canvas",
)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the editor loggers.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    handlers = []
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in EDITOR_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # Avoid duplicate output when called more than once
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("mask_editor").info("Logging initialized.")
