import json
import logging
from pathlib import Path


class DocumentStructureError(ValueError):
    """Raised when a source document is missing a required top-level section"""


class DocumentLoader:
    """Reads SPIDA and Katapult JSON exports and checks their top-level shape"""

    @staticmethod
    def read_json(file_path, source_name):
        """
        Parse a JSON file into plain dicts/lists

        Args:
            file_path (str or Path): File to read
            source_name (str): Name used in error messages ("SPIDA", "Katapult")

        Returns:
            dict: Parsed document
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"{source_name} file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DocumentStructureError(f"{source_name} file '{path.name}' is not valid JSON: {e}") from e

        logging.info(f"Loaded {source_name} document from {path}")
        return data

    @staticmethod
    def validate_spida(data, name="SPIDA"):
        """Check that a SPIDA document has leads, client data and at least one location"""
        if not isinstance(data, dict):
            raise DocumentStructureError(f"{name} document is empty or not a JSON object")

        leads = data.get("leads")
        if not isinstance(leads, list) or not leads:
            raise DocumentStructureError(f"{name} document does not contain any leads")

        if not isinstance(data.get("clientData"), dict):
            raise DocumentStructureError(f"{name} document does not contain client data")

        location_count = 0
        for index, lead in enumerate(leads):
            if not isinstance(lead, dict):
                continue
            locations = lead.get("locations")
            if locations is None:
                continue
            if not isinstance(locations, list):
                raise DocumentStructureError(f"{name} document lead {index} has malformed locations")
            location_count += len(locations)
        if location_count == 0:
            raise DocumentStructureError(f"{name} document does not contain any locations")

        logging.info(f"{name} document has {len(leads)} lead(s) and {location_count} location(s)")
        return data

    @staticmethod
    def validate_katapult(data, name="Katapult"):
        """Check that a Katapult document has a non-empty nodes map"""
        if not isinstance(data, dict):
            raise DocumentStructureError(f"{name} document is empty or not a JSON object")

        nodes = data.get("nodes")
        if not isinstance(nodes, dict) or not nodes:
            raise DocumentStructureError(f"{name} document does not contain any nodes")

        logging.info(f"{name} document has {len(nodes)} node(s)")
        return data

    @classmethod
    def load_spida(cls, file_path):
        path = Path(file_path)
        return cls.validate_spida(cls.read_json(path, "SPIDA"), f"SPIDA file '{path.name}'")

    @classmethod
    def load_katapult(cls, file_path):
        path = Path(file_path)
        return cls.validate_katapult(cls.read_json(path, "Katapult"), f"Katapult file '{path.name}'")
