# --- bmap_lib/services/config_service.py ---
import configparser
import logging
import os

log = logging.getLogger("bmap.config")

# [Render] keys and how to read them back from the file.
_RENDER_TYPES = {
    "water_opacity": float,
    "token_size": int,
}


class ConfigService:
    """Manages reading from and writing to the bmap.cfg file."""

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.defaults = {
            "Render": {
                "water_color": "#003f7f",
                "water_opacity": "0.7",
                "token_size": "40",
                "token_color": "#808080",
                "token_border_color": "#000000",
                "earth_color": "#8B4513",
            },
            "Server": {
                "host": "127.0.0.1",
                "port": "8080",
            },
        }

    def get_settings(self) -> dict:
        """Reads settings from the config file, applying defaults if missing."""
        config = configparser.ConfigParser()
        # Apply defaults first
        for section, values in self.defaults.items():
            config[section] = values

        # Read existing file to override defaults
        if not config.read(self.config_path):
            log.info("Config file not found at %s. Creating with defaults.", self.config_path)
            self.save_settings(self._config_to_dict(config))

        return self._config_to_dict(config)

    def save_settings(self, settings: dict):
        """Saves a dictionary of settings to the config file."""
        config = configparser.ConfigParser()
        for section, values in settings.items():
            config[section] = {k: str(v) for k, v in values.items()}

        try:
            config_dir = os.path.dirname(self.config_path)
            if config_dir:
                os.makedirs(config_dir, exist_ok=True)
            with open(self.config_path, "w") as configfile:
                config.write(configfile)
            log.info("Settings successfully saved to %s", self.config_path)
        except IOError as e:
            log.error("Failed to write settings to %s: %s", self.config_path, e)

    def get_render_styles(self) -> dict:
        """The [Render] section as a typed style dictionary for the SVG renderer."""
        styles = {}
        for key, value in self.get_settings().get("Render", {}).items():
            convert = _RENDER_TYPES.get(key)
            if convert is None:
                styles[key] = value
                continue
            try:
                styles[key] = convert(value)
            except ValueError:
                log.warning("Ignoring invalid value for %s: %r", key, value)
        return styles

    def _config_to_dict(self, config: configparser.ConfigParser) -> dict:
        """Converts a ConfigParser object to a nested dictionary."""
        return {s: dict(config.items(s)) for s in config.sections()}
