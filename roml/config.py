import logging
import os
from pathlib import Path

from dotenv import dotenv_values


TRUTHY_VALUES = ("1", "true", "yes", "on")


class RomlConfig:
    DEFAULTS = {
        "ROML_LOG_LEVEL": "INFO",
        "ROML_LOG_FILE": "roml.log",
        "ROML_JSON_INDENT": "2",
        "ROML_STRICT": "false",
    }

    def __init__(self, env_path=None):
        self.env_path = env_path if env_path else Path(os.getcwd()) / ".env"
        self._load_config()

    def _load_config(self):
        # .env file first, process environment wins
        self.config = dict(self.DEFAULTS)
        if Path(self.env_path).is_file():
            self.config.update({k: v for k, v in dotenv_values(self.env_path).items() if v is not None})
        self.config.update({k: v for k, v in os.environ.items() if k in self.DEFAULTS})

        self.log_file = self.config["ROML_LOG_FILE"]
        self.log_level = self._parse_log_level(self.config["ROML_LOG_LEVEL"])
        self.json_indent = self._parse_indent(self.config["ROML_JSON_INDENT"])
        self.strict = self.config["ROML_STRICT"].strip().lower() in TRUTHY_VALUES

    @staticmethod
    def _parse_log_level(value: str) -> int:
        level = logging.getLevelName(value.strip().upper())
        return level if isinstance(level, int) else logging.INFO

    @staticmethod
    def _parse_indent(value: str):
        try:
            indent = int(value)
        except ValueError:
            return 2
        # json.dumps treats a non-positive indent as newlines only; 0 means compact here
        return indent if indent > 0 else None

    def configure_logging(self):
        logging.basicConfig(
            filename=Path(os.getcwd()) / self.log_file,
            level=self.log_level,
            format="%(asctime)s - %(levelname)s - %(message)s",
            force=True,
        )
        logging.info(f"[RomlConfig] Loaded config: log_level={logging.getLevelName(self.log_level)}, json_indent={self.json_indent}, strict={self.strict}")
