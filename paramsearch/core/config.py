from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Any, Optional
import yaml
import os

from .exceptions import ConfigurationError

ENGINE_SECTIONS = ('grid', 'bayesian', 'differential_evolution', 'random')

class EngineDefaults(BaseModel):
    """Default evaluation budgets per engine (None means unlimited)"""
    grid: Optional[int] = None
    bayesian: int = 50
    differential_evolution: int = 200
    random: int = 100

    model_config = ConfigDict(extra="forbid")

class Settings(BaseSettings):
    app_name: str = "paramsearch"
    version: str = "0.1.0"
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    # Budgets
    default_budgets: EngineDefaults = Field(default_factory=EngineDefaults)
    max_evaluations_ceiling: Optional[int] = None

    model_config = SettingsConfigDict(
        env_prefix="PARAMSEARCH_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore"
    )

def load_config(config_path: str) -> Dict[str, Any]:
    """Load per-engine optimizer configuration from a YAML file"""
    try:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read optimizer config '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in optimizer config '{config_path}': {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Optimizer config '{config_path}' must be a mapping")

    unknown = [key for key in config if key not in ENGINE_SECTIONS]
    if unknown:
        raise ConfigurationError(
            f"Unknown sections {unknown} in '{config_path}'. Expected any of {list(ENGINE_SECTIONS)}"
        )

    # Expand environment variables
    return _expand_env_vars(config)

def _expand_env_vars(obj):
    """Recursively expand environment variables in config"""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
        env_var = obj[2:-1]
        value = os.getenv(env_var)
        if value is None:
            return obj
        # Environment values arrive as strings; let YAML give them a type
        return yaml.safe_load(value)
    return obj

# Global settings instance
settings = Settings()
