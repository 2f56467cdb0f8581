import logging
from .utils import Utils, UNKNOWN, NO_PERCENT
from .owner_matcher import OwnerMatcher
from ..models.data_models import (
    PoleIdentifier, AttachmentRecord, AttachmentState, UsageCategory
)


class SpidaPole:
    """A SPIDA location together with its position in the lead list"""

    def __init__(self, lead_index, location_index, location):
        self.lead_index = lead_index
        self.location_index = location_index
        self.location = location

    @property
    def key(self):
        return f"{self.lead_index}-{self.location_index}"

    @property
    def label(self):
        label = self.location.get("label")
        return str(label).strip() if label is not None else ""

    def __repr__(self):
        return f"SpidaPole({self.key}, {self.label!r})"


class SpidaExtractor:
    """Query surface over a SPIDAcalc project export"""

    LAYER_TYPES = {
        AttachmentState.CURRENT: "Measured",
        AttachmentState.PROPOSED: "Recommended",
    }

    def __init__(self, spida_data, owner_matcher=None, utility_name="CPS", pole_number_prefixes=None):
        self.data = spida_data or {}
        self.owner_matcher = owner_matcher or OwnerMatcher()
        self.utility_name = utility_name
        self.pole_number_prefixes = pole_number_prefixes or []

        self.poles = self._build_pole_list()
        self._pole_catalog = self._build_catalog(["clientData", "poles"])
        self._wire_catalog = self._build_catalog(["clientData", "wires"], extra_keys=("size",))
        logging.info(f"SPIDA extractor ready: {len(self.poles)} poles, "
                     f"{len(self._pole_catalog)} pole catalog keys, {len(self._wire_catalog)} wire catalog keys")

    def _build_pole_list(self):
        poles = []
        leads = Utils.get_nested_value(self.data, ["leads"], [])
        if not isinstance(leads, list):
            return poles
        for lead_index, lead in enumerate(leads):
            locations = Utils.get_nested_value(lead, ["locations"], [])
            if not isinstance(locations, list):
                continue
            for location_index, location in enumerate(locations):
                if isinstance(location, dict):
                    poles.append(SpidaPole(lead_index, location_index, location))
        return poles

    def _build_catalog(self, path, extra_keys=()):
        """Index client data definitions by alias id so lookups are O(1)"""
        catalog = {}
        definitions = Utils.get_nested_value(self.data, path, [])
        if not isinstance(definitions, list):
            return catalog
        for definition in definitions:
            if not isinstance(definition, dict):
                continue
            keys = []
            for alias in definition.get("aliases") or []:
                alias_id = alias.get("id") if isinstance(alias, dict) else alias
                if alias_id:
                    keys.append(str(alias_id))
            for key in ("id",) + tuple(extra_keys):
                if definition.get(key):
                    keys.append(str(definition[key]))
            for key in keys:
                catalog.setdefault(key, definition)
        return catalog

    # ------------------------------------------------------------------
    # Pole identity
    # ------------------------------------------------------------------

    def get_pole_number(self, pole):
        return pole.label or UNKNOWN

    def get_coordinates(self, pole):
        """Return (latitude, longitude) from the GeoJSON point, or (None, None)"""
        coordinates = Utils.get_nested_value(pole.location, ["geographicCoordinate", "coordinates"], None)
        if isinstance(coordinates, list) and len(coordinates) >= 2:
            longitude, latitude = coordinates[0], coordinates[1]
            if Utils.valid_coordinates(latitude, longitude):
                return float(latitude), float(longitude)
        return None, None

    def get_alias_ids(self, pole):
        """Additional identifiers stored as pole tags"""
        aliases = []
        for tag in Utils.get_nested_value(pole.location, ["poleTags"], []) or []:
            if not isinstance(tag, dict):
                continue
            for key in ("value", "name", "tag_number"):
                value = tag.get(key)
                if isinstance(value, (str, int)) and str(value).strip():
                    aliases.append(str(value).strip())
                    break
        return aliases

    def list_pole_identifiers(self):
        """One identifier for the label plus one per distinct pole tag"""
        identifiers = []
        for pole in self.poles:
            latitude, longitude = self.get_coordinates(pole)
            seen = set()
            for pole_id in [pole.label] + self.get_alias_ids(pole):
                if not pole_id or pole_id in seen:
                    continue
                seen.add(pole_id)
                identifiers.append(PoleIdentifier(
                    id=pole_id,
                    normalized_id=Utils.normalize_pole_number(pole_id, self.pole_number_prefixes),
                    source_ref=pole,
                    source_index=pole.key,
                    latitude=latitude,
                    longitude=longitude,
                ))
            if not seen:
                logging.warning(f"SPIDA location {pole.key} has no label; it can only match by location")
                identifiers.append(PoleIdentifier(
                    id="", normalized_id="", source_ref=pole, source_index=pole.key,
                    latitude=latitude, longitude=longitude,
                ))
        return identifiers

    def get_next_pole_label(self, pole):
        """Label of the following location in the same lead"""
        for candidate in self.poles:
            if (candidate.lead_index == pole.lead_index
                    and candidate.location_index == pole.location_index + 1
                    and candidate.label):
                return candidate.label
        return None

    # ------------------------------------------------------------------
    # Designs
    # ------------------------------------------------------------------

    def get_design(self, pole, state):
        """Find the Measured (current) or Recommended (proposed) design of a location"""
        designs = Utils.get_nested_value(pole.location, ["designs"], [])
        if not isinstance(designs, list) or not designs:
            return None

        layer_type = self.LAYER_TYPES[state]
        for design in designs:
            if isinstance(design, dict) and design.get("layerType") == layer_type:
                return design

        # Older exports omit layerType; first design is measured, last is recommended
        if not any(isinstance(d, dict) and d.get("layerType") for d in designs):
            fallback = designs[0] if state == AttachmentState.CURRENT else designs[-1]
            return fallback if isinstance(fallback, dict) else None
        return None

    def _structure_items(self, pole, state, key):
        design = self.get_design(pole, state)
        items = Utils.get_nested_value(design, ["structure", key], [])
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def list_attachments(self, pole, state):
        """Wires, equipment and guys of one design as AttachmentRecords (heights in feet)"""
        attachments = []
        proposed = state == AttachmentState.PROPOSED

        for index, wire in enumerate(self._structure_items(pole, state, "wires")):
            attachments.append(AttachmentRecord(
                id=str(wire.get("id", f"wire-{index}")),
                owner_name=OwnerMatcher.owner_name(wire.get("owner")),
                kind="wire",
                attachment_height_ft=Utils.meters_to_feet(Utils.get_nested_value(wire, ["attachmentHeight", "value"])),
                midspan_height_ft=Utils.meters_to_feet(Utils.get_nested_value(wire, ["midspanHeight", "value"])),
                usage_category=self.get_wire_usage(wire),
                description=self.get_wire_description(wire),
                proposed=proposed,
            ))

        for index, equipment in enumerate(self._structure_items(pole, state, "equipments")):
            attachments.append(AttachmentRecord(
                id=str(equipment.get("id", f"equipment-{index}")),
                owner_name=OwnerMatcher.owner_name(equipment.get("owner")),
                kind="equipment",
                attachment_height_ft=Utils.meters_to_feet(Utils.get_nested_value(equipment, ["attachmentHeight", "value"])),
                usage_category=UsageCategory.OTHER,
                description=self.get_equipment_description(equipment),
                proposed=proposed,
            ))

        for index, guy in enumerate(self._structure_items(pole, state, "guys")):
            attachments.append(AttachmentRecord(
                id=str(guy.get("id", f"guy-{index}")),
                owner_name=OwnerMatcher.owner_name(guy.get("owner")),
                kind="guy",
                attachment_height_ft=Utils.meters_to_feet(Utils.get_nested_value(guy, ["attachmentHeight", "value"])),
                description="Down Guy",
                proposed=proposed,
            ))

        return attachments

    def find_attachments_by_owner(self, pole, state, predicate):
        return [a for a in self.list_attachments(pole, state) if predicate(a.owner_name)]

    def get_wire_usage(self, wire):
        """Usage group from the wire itself, else from the wire catalog"""
        usage = wire.get("usageGroup")
        if usage:
            return UsageCategory.from_label(usage)

        client_item = wire.get("clientItem")
        if isinstance(client_item, dict):
            lookup = client_item.get("size") or client_item.get("id")
        else:
            lookup = client_item
        definition = self._wire_catalog.get(str(lookup)) if lookup else None
        groups = definition.get("usageGroups") if definition else None
        if isinstance(groups, list) and groups:
            return UsageCategory.from_label(groups[0])
        return UsageCategory.OTHER

    @staticmethod
    def get_wire_description(wire):
        client_item = wire.get("clientItem")
        if client_item is not None:
            text = str(client_item)
            if "Fiber" in text:
                return "Fiber Cable"
            if "Coax" in text:
                return "Coaxial Cable"

        owner = OwnerMatcher.owner_name(wire.get("owner"))
        if owner:
            return f"{owner} Cable"
        return "Cable"

    @staticmethod
    def get_equipment_description(equipment):
        owner = OwnerMatcher.owner_name(equipment.get("owner")) or UNKNOWN
        type_name = Utils.get_nested_value(equipment, ["type", "name"], None)
        if not type_name:
            type_name = Utils.get_nested_value(equipment, ["clientItem", "type"], None)
        if isinstance(type_name, str) and type_name.strip():
            return f"{type_name.strip()} ({owner})"
        return f"Equipment ({owner})"

    def find_lowest_neutral_height(self, pole, state):
        """Lowest utility-owned neutral wire attachment height in feet"""
        lowest = None
        for attachment in self.list_attachments(pole, state):
            if (attachment.kind == "wire"
                    and attachment.usage_category == UsageCategory.NEUTRAL
                    and OwnerMatcher.contains_utility(attachment.owner_name, self.utility_name)
                    and attachment.attachment_height_ft is not None):
                if lowest is None or attachment.attachment_height_ft < lowest:
                    lowest = attachment.attachment_height_ft
        return lowest

    # ------------------------------------------------------------------
    # Pole-level attributes
    # ------------------------------------------------------------------

    def get_owner(self, pole, state=AttachmentState.CURRENT):
        owner = Utils.get_nested_value(self.get_design(pole, state), ["structure", "pole", "owner"], None)
        if isinstance(owner, dict):
            owner_id = owner.get("id")
            if owner_id:
                return str(owner_id)
            industry = owner.get("industry")
            return f"{industry} Owner" if industry else UNKNOWN
        if owner:
            return str(owner)
        return UNKNOWN

    def resolve_pole_definition(self, client_item):
        """
        Resolve a pole's clientItem reference against the client data catalog

        Returns:
            dict or None: The catalog definition, an inline definition, or None
            when the reference cannot be resolved
        """
        if isinstance(client_item, str):
            return self._pole_catalog.get(client_item)
        if isinstance(client_item, dict):
            ref = client_item.get("id") or client_item.get("alias")
            if ref and str(ref) in self._pole_catalog:
                return self._pole_catalog[str(ref)]
            if client_item.get("species") or client_item.get("classOfPole"):
                return client_item
        return None

    def get_structure_description(self, pole):
        """Pole height, class and species such as 40-4 Southern Pine"""
        for state in (AttachmentState.CURRENT, AttachmentState.PROPOSED):
            client_item = Utils.get_nested_value(self.get_design(pole, state), ["structure", "pole", "clientItem"], None)
            if client_item is None:
                continue

            definition = self.resolve_pole_definition(client_item)
            if definition is None:
                logging.debug(f"SPIDA pole {pole.label}: pole definition {client_item!r} not found in client data")
                return UNKNOWN

            species = str(definition.get("species") or "").strip()
            pole_class = str(definition.get("classOfPole") or "").strip()
            if not species or not pole_class:
                return UNKNOWN

            height_ft = Utils.meters_to_feet(Utils.get_nested_value(definition, ["height", "value"]))
            if height_ft:
                return f"{round(height_ft)}-{pole_class} {species}"
            return f"{pole_class} {species}"
        return UNKNOWN

    @staticmethod
    def is_riser(equipment):
        """Check every known schema location of an equipment type for RISER"""
        candidates = [
            Utils.get_nested_value(equipment, ["clientItem", "type"], None),
            Utils.get_nested_value(equipment, ["type", "name"], None),
            Utils.get_nested_value(equipment, ["clientItem", "type", "name"], None),
            equipment.get("type") if isinstance(equipment, dict) else None,
        ]
        for value in candidates:
            if isinstance(value, str) and value.strip().upper() == "RISER":
                return True

        for path in (["clientItem", "description"], ["clientItem", "size"]):
            text = Utils.get_nested_value(equipment, path, None)
            if isinstance(text, str) and "RISER" in text.upper():
                return True
        return False

    def check_has_riser(self, pole, state=AttachmentState.PROPOSED):
        """True when the design carries a riser owned by the attacher of interest"""
        for equipment in self._structure_items(pole, state, "equipments"):
            if self.is_riser(equipment) and self.owner_matcher.matches(equipment.get("owner")):
                logging.debug(f"SPIDA pole {pole.label}: attacher riser found")
                return True
        return False

    def check_has_guy(self, pole, state=AttachmentState.PROPOSED):
        design = self.get_design(pole, state)
        for key in ("guys", "spanGuys"):
            items = Utils.get_nested_value(design, ["structure", key], [])
            if isinstance(items, list) and items:
                return True
        return False

    def extract_load_percentage(self, pole, state=AttachmentState.PROPOSED):
        """Pole stress ratio as a percentage, else the Pole/PERCENT analysis result"""
        design = self.get_design(pole, state)
        stress_ratio = Utils.to_float(Utils.get_nested_value(design, ["structure", "pole", "stressRatio"]))
        if stress_ratio is not None:
            return Utils.format_percent(stress_ratio)

        for analysis in Utils.get_nested_value(design, ["analysis"], []) or []:
            for result in Utils.get_nested_value(analysis, ["results"], []) or []:
                if not isinstance(result, dict):
                    continue
                if result.get("component") == "Pole" and result.get("unit") == "PERCENT":
                    formatted = Utils.format_percent_value(result.get("actual"))
                    if formatted != NO_PERCENT:
                        return formatted
        return NO_PERCENT

    def get_construction_grade(self, pole):
        for state in (AttachmentState.PROPOSED, AttachmentState.CURRENT):
            design = self.get_design(pole, state)
            for analysis in Utils.get_nested_value(design, ["analysis"], []) or []:
                grade = Utils.get_nested_value(analysis, ["analysisCaseDetails", "constructionGrade"], None)
                if grade:
                    return f"Grade {grade}"
        return UNKNOWN
