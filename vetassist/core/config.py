"""Configuration management"""
import os
import json
import logging
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent.parent
    PROMPTS_CONFIG_PATH: Path = BASE_DIR / "config" / "prompts.json"
    APP_CONFIG_PATH: Path = BASE_DIR / "config" / "app_config.yaml"

    # Load app config
    _app_config: Optional[Dict[str, Any]] = None

    # Gemini API
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", os.getenv("GOOGLE_API_KEY", ""))
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    # Clinic backend
    API_URL: str = os.getenv("VETASSIST_API_URL", "http://10.0.2.2:8000")
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    SESSION_PATH: Path = Path(
        os.getenv("VETASSIST_SESSION_PATH", str(Path.home() / ".vetassist" / "session.json"))
    )

    # Output settings
    OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", "./results"))
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "./logs"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Assistant service settings
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    @classmethod
    def load_app_config(cls) -> Dict[str, Any]:
        """Load application configuration from YAML file"""
        if cls._app_config is not None:
            return cls._app_config

        try:
            if cls.APP_CONFIG_PATH.exists():
                with open(cls.APP_CONFIG_PATH, "r", encoding="utf-8") as f:
                    cls._app_config = yaml.safe_load(f) or {}
                    return cls._app_config
            else:
                # Return empty dict if config file doesn't exist
                return {}
        except (yaml.YAMLError, IOError) as e:
            raise ValueError(f"Failed to load app config from {cls.APP_CONFIG_PATH}: {e}")

    @classmethod
    def get(cls, *keys, default=None):
        """Get nested config value using dot notation

        Args:
            *keys: Variable number of keys to traverse nested config
            default: Default value if key not found

        Example:
            Config.get("gemini", "generation", "temperature") -> config["gemini"]["generation"]["temperature"]
        """
        config = cls.load_app_config()
        value = config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default
        return value if value is not None else default

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration"""
        if not cls.GEMINI_API_KEY:
            raise ValueError(
                "GEMINI_API_KEY is required. Set it in .env file or environment variable."
            )

    @classmethod
    def ensure_directories(cls) -> None:
        """Ensure output and log directories exist"""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        (cls.LOG_DIR / cls.get("directories", "debug", default="debug")).mkdir(parents=True, exist_ok=True)

    @classmethod
    def setup_logging(cls, level: Optional[str] = None) -> None:
        """Configure root logging with console and file handlers"""
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = cls.LOG_DIR / cls.get("files", "log_filename", default="vetassist.log")
        log_format = cls.get(
            "logging", "format",
            default="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        logging.basicConfig(
            level=(level or cls.LOG_LEVEL).upper(),
            format=log_format,
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(log_file, encoding="utf-8"),
            ],
        )

    @classmethod
    def load_prompts_config(cls) -> Dict[str, Any]:
        """Load prompts configuration from JSON file"""
        try:
            if cls.PROMPTS_CONFIG_PATH.exists():
                with open(cls.PROMPTS_CONFIG_PATH, "r", encoding="utf-8") as f:
                    return json.load(f)
            else:
                # Return empty dict if config file doesn't exist
                return {}
        except (json.JSONDecodeError, IOError) as e:
            raise ValueError(f"Failed to load prompts config from {cls.PROMPTS_CONFIG_PATH}: {e}")

    @classmethod
    def get_extraction_prompt_template(cls) -> str:
        """Get the patient extraction prompt template from config file"""
        prompts_config = cls.load_prompts_config()
        template = prompts_config.get("extraction_prompt_template", "")
        # Long templates are stored one line per list item
        if isinstance(template, list):
            return "\n".join(template)
        return template
