import re
import sys
import math
import logging
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

FEET_PER_METER = 3.28084
EARTH_RADIUS_M = 6371000

NO_DATA = "N/A"
UNKNOWN = "Unknown"
NO_PERCENT = "--"

# 25' 6"  25'6"  25'-6"  25' 6  25'
IMPERIAL_HEIGHT_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?)\s*'\s*-?\s*(?:(\d+(?:\.\d+)?)\s*\"?)?$")
PLAIN_NUMBER_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?$")


class Utils:
    """Utility functions shared across the application"""

    @staticmethod
    def get_nested_value(tree, path, default=None):
        """
        Safely walk a path of keys through nested dictionaries

        Args:
            tree: Parsed JSON data (dicts, lists and scalars)
            path (list): Keys to follow; integer segments index into lists
            default: Value returned when any step is missing

        Returns:
            The value found at the end of the path or the default
        """
        try:
            current = tree
            for segment in path:
                if isinstance(current, dict):
                    if segment not in current:
                        return default
                    current = current[segment]
                elif isinstance(current, list) and isinstance(segment, int):
                    if segment < -len(current) or segment >= len(current):
                        return default
                    current = current[segment]
                else:
                    return default
            return default if current is None else current
        except Exception as e:
            logging.debug(f"Nested lookup failed for path {path}: {e}")
            return default

    @staticmethod
    def to_float(value):
        """Convert a raw value to float, returning None when it is not numeric"""
        if value is None or isinstance(value, bool):
            return None
        try:
            result = float(value)
        except (ValueError, TypeError):
            return None
        if math.isnan(result) or math.isinf(result):
            return None
        return result

    @staticmethod
    def meters_to_feet(meters):
        """Convert metres to feet"""
        value = Utils.to_float(meters)
        if value is None:
            return None
        return value * FEET_PER_METER

    @staticmethod
    def parse_imperial_height(height_str):
        """
        Parse a feet/inches string into decimal feet

        Accepts 25' 6", 25'6", 25'-6", 25' and plain numbers. Anything else
        returns None.
        """
        if height_str is None or isinstance(height_str, bool):
            return None
        if isinstance(height_str, (int, float)):
            return Utils.to_float(height_str)

        s = str(height_str).strip()
        if not s:
            return None

        m = IMPERIAL_HEIGHT_PATTERN.match(s)
        if m:
            feet = float(m.group(1))
            inches = float(m.group(2)) if m.group(2) else 0.0
            if feet < 0:
                return feet - inches / 12
            return feet + inches / 12

        m = PLAIN_NUMBER_PATTERN.match(s)
        if m:
            return float(s)

        logging.debug(f"Could not parse height: '{height_str}'")
        return None

    @staticmethod
    def format_height(feet):
        """Format decimal feet as 25.5' or N/A"""
        value = Utils.to_float(feet)
        if value is None:
            return NO_DATA
        return f"{value:.1f}'"

    @staticmethod
    def format_percent(ratio):
        """Format a 0-1 ratio as a one-decimal percentage"""
        value = Utils.to_float(ratio)
        if value is None:
            return NO_PERCENT
        return f"{value * 100:.1f}%"

    @staticmethod
    def format_percent_value(percent):
        """Format a value that is already a percentage (65.3 -> 65.3%)"""
        if isinstance(percent, str):
            percent = percent.strip().rstrip('%').strip()
        value = Utils.to_float(percent)
        if value is None:
            return NO_PERCENT
        return f"{value:.1f}%"

    @staticmethod
    def normalize_pole_number(pole_number, prefixes=None):
        """
        Normalize a pole number for fuzzy comparison

        Args:
            pole_number (str): Raw pole label, tag or number
            prefixes (list, optional): Alphabetic prefixes to drop when they
                precede a digit (e.g. "PL")

        Returns:
            str: Lowercased identifier without punctuation, prefixes or
            leading zeros; empty string when nothing is left
        """
        if pole_number is None:
            return ""

        s = str(pole_number).strip().lower()

        # Sequence prefixes like "1-" differ between systems
        s = re.sub(r'^\d+-', '', s)

        s = re.sub(r'[^0-9a-z]', '', s)

        for prefix in prefixes or []:
            prefix = str(prefix).strip().lower()
            if prefix and s.startswith(prefix) and s[len(prefix):len(prefix) + 1].isdigit():
                s = s[len(prefix):]
                break

        if s.isdigit():
            s = s.lstrip('0') or '0'

        return s

    @staticmethod
    def haversine_m(point_a, point_b):
        """Great-circle distance in metres between two (lat, lon) pairs"""
        lat1, lon1 = map(math.radians, point_a)
        lat2, lon2 = map(math.radians, point_b)
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    @staticmethod
    def valid_coordinates(latitude, longitude):
        """Check that a latitude/longitude pair is numeric and in range"""
        lat = Utils.to_float(latitude)
        lon = Utils.to_float(longitude)
        if lat is None or lon is None:
            return False
        return -90 <= lat <= 90 and -180 <= lon <= 180

    @staticmethod
    def extract_numeric_part(pole_number):
        """Extract numeric part from a pole number for sorting purposes"""
        match = re.search(r'(\d+)([A-Za-z]*)', str(pole_number))
        if match:
            return (int(match.group(1)), match.group(2) or '')
        return (float('inf'), '')

    @staticmethod
    def get_base_directory():
        """Get the base directory for the application (exe or script location)"""
        if getattr(sys, 'frozen', False):
            # Running as a PyInstaller bundle
            return Path(sys.executable).parent
        else:
            return Path.cwd()
