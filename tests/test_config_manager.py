import sys
import json
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from make_ready.core.config_manager import ConfigManager


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base_dir = Path(self.temp_dir.name)
        self.config_manager = ConfigManager(self.base_dir)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_get_default_config(self):
        default_config = self.config_manager.get_default_config()
        self.assertIn("attacher_aliases", default_config)
        self.assertIn("utility_name", default_config)
        self.assertIn("correlation", default_config)
        self.assertIn("output_settings", default_config)
        self.assertIn("column_mappings", default_config)
        self.assertEqual(default_config["correlation"]["geo_threshold_m"], 20.0)
        self.assertEqual(len(default_config["column_mappings"]), 19)

    def test_configurations_directory_created(self):
        self.assertTrue((self.base_dir / "configurations").is_dir())

    def test_get_available_configs(self):
        available_configs = self.config_manager.get_available_configs()
        self.assertIn("Default", available_configs)

    def test_load_default_config(self):
        config = self.config_manager.load_config("Default")
        self.assertEqual(config["utility_name"], "CPS")

    def test_load_partial_config_keeps_defaults(self):
        with open(self.base_dir / ConfigManager.DEFAULT_CONFIG_FILE, 'w', encoding='utf-8') as f:
            json.dump({"utility_name": "AEP", "correlation": {"geo_threshold_m": 5}}, f)

        config = self.config_manager.load_config("Default")
        self.assertEqual(config["utility_name"], "AEP")
        self.assertEqual(config["correlation"]["geo_threshold_m"], 5)
        self.assertEqual(config["analysis"]["relocate_tolerance_ft"], 0.1)

    def test_load_invalid_json_falls_back_to_defaults(self):
        with open(self.base_dir / ConfigManager.DEFAULT_CONFIG_FILE, 'w', encoding='utf-8') as f:
            f.write("{not json")

        config = self.config_manager.load_config("Default")
        self.assertEqual(config["utility_name"], "CPS")

    def test_save_config(self):
        config_name = "test_config"
        config_data = self.config_manager.get_default_config()
        config_data["attacher_name"] = "Other Cable Co"

        self.assertTrue(self.config_manager.save_config(config_name, config_data))
        self.assertIn(config_name, self.config_manager.get_available_configs())
        loaded = self.config_manager.load_config(config_name)
        self.assertEqual(loaded["attacher_name"], "Other Cable Co")

    def test_delete_config(self):
        self.config_manager.save_config("to_delete", {"utility_name": "X"})
        self.assertTrue(self.config_manager.delete_config("to_delete"))
        self.assertNotIn("to_delete", self.config_manager.get_available_configs())
        self.assertFalse(self.config_manager.delete_config("Default"))


if __name__ == '__main__':
    unittest.main()
