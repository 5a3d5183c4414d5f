# config.py
import logging
import os
import re
import sys

import yaml

log_handle = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/config.yaml"


class Config:
    _instance = None
    _settings = {}

    def __new__(cls, config_file_path: str = None):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._load_config(config_file_path or DEFAULT_CONFIG_PATH)
        return cls._instance

    @staticmethod
    def _replace_env_placeholders(obj):
        if isinstance(obj, dict):
            return {k: Config._replace_env_placeholders(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [Config._replace_env_placeholders(i) for i in obj]
        elif isinstance(obj, str):
            return re.sub(r"\{(\w+)\}", lambda m: os.getenv(m.group(1), ""), obj)
        else:
            return obj

    @staticmethod
    def _get_project_root():
        """
        Returns the root directory of the project.
        """
        current_path = os.path.abspath(__file__)
        dir_path = os.path.dirname(current_path)

        marker_files = [
            "pyproject.toml", ".git", "requirements.txt", "LICENSE"
        ]

        while dir_path != os.path.dirname(dir_path):
            for marker in marker_files:
                if os.path.exists(os.path.join(dir_path, marker)):
                    return dir_path
            dir_path = os.path.dirname(dir_path)
        return None

    def _load_config(self, config_file_path: str):
        """
        Loads configuration from a YAML file. Relative paths are resolved
        against the project root; absolute paths are used as they are.
        When the default file is absent (an installed package run outside
        the source tree) the built-in defaults are used.
        """
        BASE_DIR = Config._get_project_root()
        if BASE_DIR is None:
            BASE_DIR = os.environ.get("BASE_DIR", os.getcwd())
        resolved_path = os.path.join(BASE_DIR, config_file_path)

        os.environ["BASE_DIR"] = BASE_DIR
        if os.path.exists(resolved_path):
            log_handle.info(f"Loading configuration from {resolved_path}")
            with open(resolved_path, 'r', encoding='utf-8') as f:
                self._settings = yaml.safe_load(f) or {}
        elif config_file_path == DEFAULT_CONFIG_PATH:
            log_handle.warning(f"Config file not found at {resolved_path}. Using built-in defaults.")
            self._settings = {}
        else:
            log_handle.error(f"Config file not found at {resolved_path}. Exiting.")
            Config._instance = None
            sys.exit(1)

        self._settings = Config._replace_env_placeholders(self._settings)
        log_handle.info(f"Loaded config: {self._settings}")

    def __getattr__(self, name):
        """
        Allows accessing config settings like attributes (e.g., config.OCR_LANGUAGE).
        This method flattens the nested YAML structure for easier access.
        """
        if name.startswith("_"):
            raise AttributeError(name)
        if name == "OCR_LANGUAGE":
            return self._settings.get("ocr", {}).get("language", "eng")
        elif name == "OCR_PSM":
            return int(self._settings.get("ocr", {}).get("psm", 3))
        elif name == "OCR_OEM":
            return int(self._settings.get("ocr", {}).get("oem", 3))
        elif name == "OCR_OUTPUT_FORMAT":
            return self._settings.get("ocr", {}).get("output_format", "tree")
        elif name == "OCR_MIN_CONFIDENCE":
            return float(self._settings.get("ocr", {}).get("min_confidence", 0))
        elif name == "TESSERACT_CMD":
            return self._settings.get("ocr", {}).get("tesseract_cmd") or None
        elif name == "MATCH_MODE":
            return self._settings.get("matching", {}).get("mode", "substring")
        elif name == "OVERLAY_STROKE_COLOR":
            return self._settings.get("overlay", {}).get("stroke_color", "#ef4444")
        elif name == "OVERLAY_FILL_COLOR":
            return tuple(self._settings.get("overlay", {}).get("fill_color", [239, 68, 68, 51]))
        elif name == "OVERLAY_LINE_WIDTH":
            return int(self._settings.get("overlay", {}).get("line_width", 2))
        elif name == "API_HOST":
            return self._settings.get("api", {}).get("host") or "0.0.0.0"
        elif name == "API_PORT":
            return int(self._settings.get("api", {}).get("port") or 8500)
        elif name == "MAX_UPLOAD_BYTES":
            return int(self._settings.get("api", {}).get("max_upload_bytes", 10 * 1024 * 1024))
        elif name == "LOGS_DIR":
            return self._settings.get("logging", {}).get("logs_dir", "logs")
        else:
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def settings(self):
        """Returns the raw dictionary of loaded settings."""
        return self._settings

    @classmethod
    def reset(cls):
        """Reset the singleton instance for testing.
        IMPORTANT: Use it wisely. Mostly for testing purposes only.
        """
        cls._instance = None
        cls._settings = {}
