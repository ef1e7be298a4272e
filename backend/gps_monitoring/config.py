"""
Configuration Management

Loads replay, geocoding and directions settings from YAML and JSON files
in the backend config directory. Supports dot-notation access and reload.
"""

import os
import yaml
import json
from pathlib import Path
from typing import Dict, Any, List, Optional


class ConfigManager:
    """
    Manage application configuration from YAML and JSON files

    Provides:
    - Load all config files on startup (keyed by file stem)
    - Dot notation access: config.get('replay.baseStepMs')
    - Hot reload capability
    - Default values for missing keys
    """

    def __init__(self, config_dir: str = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: backend/config)
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path(__file__).parent.parent / "config"

        self.configs: Dict[str, Any] = {}
        self._load_all_configs()

    def _load_all_configs(self):
        """Load all configuration files from config directory"""
        if not self.config_dir.exists():
            print(f"   [WARN] Config directory not found: {self.config_dir}")
            return

        for yaml_file in sorted(self.config_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r', encoding='utf-8') as f:
                    self.configs[yaml_file.stem] = yaml.safe_load(f) or {}
                    print(f"   [CONFIG] Loaded: {yaml_file.name}")
            except (OSError, yaml.YAMLError) as e:
                print(f"   [WARN] Failed to load {yaml_file.name}: {e}")

        for json_file in sorted(self.config_dir.glob("*.json")):
            try:
                with open(json_file, 'r', encoding='utf-8') as f:
                    self.configs[json_file.stem] = json.load(f)
                    print(f"   [CONFIG] Loaded: {json_file.name}")
            except (OSError, json.JSONDecodeError) as e:
                print(f"   [WARN] Failed to load {json_file.name}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        The first segment is the file stem. Examples:
            config.get('replay.replay.baseStepMs')
            config.get('replay.geocode.cooldownSeconds', 4)

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.configs
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def section(self, name: str) -> Dict[str, Any]:
        """Get a top-level section of replay.yaml (e.g. 'geocode')"""
        value = self.get(f"replay.{name}", {})
        return value if isinstance(value, dict) else {}

    def get_replay_config(self) -> Dict[str, Any]:
        """Get playback configuration section"""
        return self.section("replay")

    def get_geocode_config(self) -> Dict[str, Any]:
        """Get reverse geocoding configuration section"""
        return self.section("geocode")

    def get_directions_config(self) -> Dict[str, Any]:
        """Get directions (route snapping) configuration section"""
        return self.section("directions")

    def get_speed_options(self) -> List[float]:
        """Get the selectable playback speed multipliers"""
        options = self.get("replay.replay.speedOptions") or [0.25, 0.5, 1, 2, 4]
        return [float(o) for o in options]

    def get_api_key(self) -> Optional[str]:
        """Get the maps provider API key from the environment"""
        return os.getenv("GOOGLE_MAPS_API_KEY") or None

    def reload(self):
        """Reload all configuration files"""
        print("[CONFIG] Reloading configuration...")
        self.configs.clear()
        self._load_all_configs()
        print("[OK] Configuration reloaded")

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value


# Global configuration instance
config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the global configuration instance"""
    global config
    if config is None:
        config = ConfigManager()
    return config
