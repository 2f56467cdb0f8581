import json
import logging
from pathlib import Path


class ConfigManager:
    """Manages configuration loading, saving, and defaults"""

    DEFAULT_CONFIG_FILE = "make_ready_config.json"

    def __init__(self, base_dir=None):
        if base_dir is None:
            base_dir = Path.cwd()
        self.base_dir = Path(base_dir)
        self.configs_dir = self.base_dir / "configurations"
        self.configs_dir.mkdir(parents=True, exist_ok=True)

    def get_default_config(self):
        """Get default configuration for a Charter/Spectrum make-ready report on CPS Energy poles"""
        return {
            "attacher_name": "Charter/Spectrum",
            "attacher_aliases": [
                "charter",
                "spectrum",
                "charter/spectrum",
                "charter communications"
            ],
            "utility_name": "CPS",
            "utility_display_name": "CPS Energy",
            "pole_number_prefixes": [
                "PL"
            ],
            "katapult_pole_node_types": [
                "pole"
            ],
            "correlation": {
                "geo_threshold_m": 20.0
            },
            "analysis": {
                "relocate_tolerance_ft": 0.1
            },
            "output_settings": {
                "worksheet_name": "Make Ready Report",
                "summary_sheet_name": "Summary",
                "diagnostics_sheet_name": "Pole Matching",
                "header_row": 1,
                "data_start_row": 4,
                "merge_pole_cells": True
            },
            "processing_options": {
                "include_diagnostics": True,
                "debug_mode": False
            },
            "column_mappings": [
                ["", "operation_number", "Operation Number"],
                ["", "attachment_action", "Attachment Action: (I)nstalling (R)emoving (E)xisting"],
                ["", "pole_owner", "Pole Owner"],
                ["", "pole_number", "Pole #"],
                ["", "pole_structure", "Pole Structure"],
                ["", "proposed_riser", "Proposed Riser (Yes/No)"],
                ["", "proposed_guy", "Proposed Guy (Yes/No)"],
                ["", "pla", "PLA (%) with proposed attachment"],
                ["", "construction_grade", "Construction Grade of Analysis"],
                ["Existing Mid-Span Data", "height_lowest_com", "Height Lowest Com"],
                ["Existing Mid-Span Data", "height_lowest_electrical", "Height Lowest CPS Electrical"],
                ["Mid-Span", "span_from_pole", "From Pole"],
                ["Mid-Span", "span_to_pole", "To Pole"],
                ["Make Ready Data", "attacher_description", "Attacher Description"],
                ["Make Ready Data / Attachment Height", "existing_attachment_height", "Existing"],
                ["Make Ready Data / Attachment Height", "proposed_attachment_height", "Proposed"],
                ["Make Ready Data / Mid-Span", "existing_midspan", "Existing"],
                ["Make Ready Data / Mid-Span", "proposed_midspan", "Proposed"],
                ["", "match_status", "Match Status"]
            ]
        }

    def get_config_file_path(self, config_name):
        """Get file path for configuration"""
        if config_name == "Default":
            return self.base_dir / self.DEFAULT_CONFIG_FILE
        else:
            return self.configs_dir / f"{config_name}.json"

    def get_available_configs(self):
        """Get list of available configurations"""
        configs = ["Default"]
        try:
            for file in sorted(self.configs_dir.glob("*.json")):
                configs.append(file.stem)
        except OSError as e:
            logging.warning(f"Could not list configurations in {self.configs_dir}: {e}")
        return configs

    def load_config(self, config_name):
        """Load configuration, falling back to defaults for missing keys"""
        config = self.get_default_config()
        config_file = self.get_config_file_path(config_name)

        if config_file.exists():
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                for key, value in loaded.items():
                    # Nested sections are merged so a partial file keeps the other defaults
                    if isinstance(value, dict) and isinstance(config.get(key), dict):
                        config[key].update(value)
                    else:
                        config[key] = value
                logging.info(f"Configuration for '{config_name}' successfully loaded from {config_file}")
            except (OSError, ValueError) as e:
                logging.warning(f"Failed to load configuration from {config_file}: {e}")
        elif config_name != "Default":
            logging.warning(f"Configuration '{config_name}' not found at {config_file}, using defaults")

        return config

    def save_config(self, config_name, config):
        """Save configuration"""
        config_file = self.get_config_file_path(config_name)
        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)

            with open(config_file, 'w', encoding='utf-8') as f:
                json.dump(config, f, indent=2)

            logging.info(f"Configuration for '{config_name}' successfully saved to {config_file}")
            return True
        except (OSError, TypeError) as e:
            logging.error(f"Failed to save configuration to {config_file}: {e}")
            return False

    def delete_config(self, config_name):
        """Delete configuration"""
        if config_name == "Default":
            return False

        config_file = self.get_config_file_path(config_name)
        try:
            if config_file.exists():
                config_file.unlink()
            logging.info(f"Configuration '{config_name}' deleted from {config_file}")
            return True
        except OSError as e:
            logging.error(f"Failed to delete configuration '{config_name}' at {config_file}: {e}")
            return False
