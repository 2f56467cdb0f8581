import logging
from .utils import Utils, UNKNOWN, NO_PERCENT
from .owner_matcher import OwnerMatcher
from ..models.data_models import (
    PoleIdentifier, AttachmentRecord, AttachmentState, UsageCategory
)


class DynamicAttribute:
    """
    Resolve Katapult attribute containers

    A Katapult attribute such as {"-Imported": "PL1", "assessment": "PL1A"}
    stores the same logical value under keys that record where it came from.
    Keys are tried in provenance order: imported, field-assessed,
    auto-calculated, user-selected. Any other non-empty child comes last.
    """

    IMPORTED = "-Imported"
    ASSESSED = "assessment"
    CALCULATED = "auto_calced"
    USER_SELECTED = ("one", "button_added", "multi_added")

    PRIORITY = (IMPORTED, ASSESSED, CALCULATED) + USER_SELECTED

    @staticmethod
    def _present(value):
        if value is None or isinstance(value, (dict, list)):
            return False
        if isinstance(value, str) and not value.strip():
            return False
        return True

    @classmethod
    def resolve_with_key(cls, container, priority=None):
        """Return (key, value) for the first present value, or (None, None)"""
        if not isinstance(container, dict):
            return (None, container) if cls._present(container) else (None, None)

        for key in priority or cls.PRIORITY:
            if key in container and cls._present(container[key]):
                return key, container[key]

        for key, value in container.items():
            if cls._present(value):
                return key, value
        return None, None

    @classmethod
    def resolve(cls, container, default=None, priority=None):
        _, value = cls.resolve_with_key(container, priority)
        return default if value is None else value

    @classmethod
    def attribute(cls, node, name, default=None):
        """Resolve attributes[name] of a node or other attribute-bearing item"""
        return cls.resolve(Utils.get_nested_value(node, ["attributes", name], None), default)

    @staticmethod
    def is_set(value):
        """Interpret a Katapult button or flag value"""
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "y", "1")
        return False


class KatapultNode:
    def __init__(self, node_id, node):
        self.node_id = node_id
        self.node = node

    def __repr__(self):
        return f"KatapultNode({self.node_id!r})"


class KatapultExtractor:
    """Query surface over a Katapult job export"""

    POLE_NUMBER_ATTRIBUTES = (
        "PoleNumber",
        "electric_pole_tag",
        "DLOC_number",
        "pole_number",
        "pole_id",
        "pole_tag",
    )
    POLE_OWNER_ATTRIBUTES = ("pole_owner", "pole_owner_name")
    PLA_ATTRIBUTES = ("final_passing_capacity_%", "proposed_pla_%", "pole_loading_%")
    GUY_TRACE_TYPES = ("down_guy", "anchor")

    def __init__(self, katapult_data, owner_matcher=None, utility_name="CPS", pole_number_prefixes=None,
                 pole_node_types=None):
        self.data = katapult_data or {}
        self.owner_matcher = owner_matcher or OwnerMatcher()
        self.utility_name = utility_name
        self.pole_number_prefixes = pole_number_prefixes or []
        self.pole_node_types = [t.lower() for t in (pole_node_types if pole_node_types is not None else ["pole"])]

        raw_nodes = Utils.get_nested_value(self.data, ["nodes"], {})
        self._all_nodes = raw_nodes if isinstance(raw_nodes, dict) else {}
        self._trace_data = Utils.get_nested_value(self.data, ["traces", "trace_data"], {})
        self._photos = Utils.get_nested_value(self.data, ["photos"], {})
        self._connections_by_node = self._index_connections()

        self.nodes = []
        skipped = 0
        for node_id, node in self._all_nodes.items():
            if not isinstance(node, dict):
                continue
            if self._is_pole_node(node):
                self.nodes.append(KatapultNode(node_id, node))
            else:
                skipped += 1
        logging.info(f"Katapult extractor ready: {len(self.nodes)} pole nodes ({skipped} non-pole nodes skipped), "
                     f"{len(self._connections_by_node)} nodes with connections")

    def _is_pole_node(self, node):
        node_type = DynamicAttribute.attribute(node, "node_type")
        if node_type is None or not self.pole_node_types:
            return True
        return str(node_type).strip().lower() in self.pole_node_types

    def _index_connections(self):
        index = {}
        connections = Utils.get_nested_value(self.data, ["connections"], {})
        if not isinstance(connections, dict):
            return index
        for connection_id, connection in connections.items():
            if not isinstance(connection, dict):
                continue
            for key in ("node_id_1", "node_id_2"):
                node_id = connection.get(key)
                if node_id:
                    index.setdefault(node_id, []).append((connection_id, connection))
        return index

    # ------------------------------------------------------------------
    # Pole identity
    # ------------------------------------------------------------------

    def get_pole_numbers(self, pole):
        numbers = []
        for name in self.POLE_NUMBER_ATTRIBUTES:
            value = DynamicAttribute.attribute(pole.node, name)
            if value is not None:
                value = str(value).strip()
                if value and value not in numbers:
                    numbers.append(value)
        return numbers

    def get_pole_number(self, pole):
        numbers = self.get_pole_numbers(pole)
        return numbers[0] if numbers else str(pole.node_id)

    def get_coordinates(self, pole):
        latitude = pole.node.get("latitude")
        longitude = pole.node.get("longitude")
        if Utils.valid_coordinates(latitude, longitude):
            return float(latitude), float(longitude)
        return None, None

    def list_pole_identifiers(self):
        identifiers = []
        for pole in self.nodes:
            latitude, longitude = self.get_coordinates(pole)
            for pole_id in self.get_pole_numbers(pole) or [str(pole.node_id)]:
                identifiers.append(PoleIdentifier(
                    id=pole_id,
                    normalized_id=Utils.normalize_pole_number(pole_id, self.pole_number_prefixes),
                    source_ref=pole,
                    source_index=pole.node_id,
                    latitude=latitude,
                    longitude=longitude,
                ))
        return identifiers

    # ------------------------------------------------------------------
    # Raw item access
    # ------------------------------------------------------------------

    def _equipment_items(self, pole):
        equipment = Utils.get_nested_value(pole.node, ["attributes", "equipment"], {})
        if not isinstance(equipment, dict):
            return []
        return [(key, item) for key, item in equipment.items() if isinstance(item, dict)]

    def _get_trace(self, pole, trace_id):
        if not trace_id:
            return {}
        trace = Utils.get_nested_value(pole.node, ["traces", "trace_data", trace_id], None)
        if not isinstance(trace, dict):
            trace = Utils.get_nested_value(self._trace_data, [trace_id], None)
        return trace if isinstance(trace, dict) else {}

    def _photo_wires(self, pole):
        """photofirst wire entries of the node's photos, one per trace"""
        wires = []
        seen_traces = set()
        photos = pole.node.get("photos")
        if not isinstance(photos, dict):
            return wires

        for photo_id, photo in photos.items():
            photofirst = Utils.get_nested_value(photo, ["photofirst_data"], None)
            if not isinstance(photofirst, dict):
                photofirst = Utils.get_nested_value(self._photos, [photo_id, "photofirst_data"], None)
            wire_data = Utils.get_nested_value(photofirst, ["wire"], {})
            if not isinstance(wire_data, dict):
                continue
            for wire_id, wire in wire_data.items():
                if not isinstance(wire, dict):
                    continue
                trace_id = wire.get("_trace")
                if trace_id and trace_id in seen_traces:
                    continue
                if trace_id:
                    seen_traces.add(trace_id)
                wires.append((wire_id, wire))
        return wires

    def _node_traces(self, pole):
        """Traces stored on the node plus document traces referenced by its photo wires"""
        traces = []
        node_traces = Utils.get_nested_value(pole.node, ["traces", "trace_data"], {})
        if isinstance(node_traces, dict):
            traces.extend(t for t in node_traces.values() if isinstance(t, dict))
        for _, wire in self._photo_wires(pole):
            trace = self._get_trace(pole, wire.get("_trace"))
            if trace and trace not in traces:
                traces.append(trace)
        return traces

    @staticmethod
    def _equipment_owner(item):
        for name in ("owner_name", "company_name", "company"):
            owner = DynamicAttribute.resolve(item.get(name))
            if owner:
                return str(owner).strip()
        return ""

    @staticmethod
    def _move_feet(item):
        """mr_move is recorded in inches"""
        move = DynamicAttribute.resolve(item.get("mr_move"))
        if isinstance(move, str):
            move = move.strip().rstrip('"').strip()
        move = Utils.to_float(move)
        return move / 12 if move else 0.0

    @staticmethod
    def describe_equipment(item):
        conductor_type = DynamicAttribute.resolve(item.get("conductor_type"))
        equipment_type = DynamicAttribute.resolve(item.get("equipment_type"))
        if conductor_type and equipment_type:
            return f"{conductor_type} {equipment_type}"
        if conductor_type:
            return str(conductor_type)
        if equipment_type:
            return str(equipment_type)
        return "Attachment"

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def _pole_records(self, pole):
        """All attachments at the pole with measured heights and proposed flags"""
        records = []

        for key, item in self._equipment_items(pole):
            equipment_type = DynamicAttribute.resolve(item.get("equipment_type"))
            conductor_type = DynamicAttribute.resolve(item.get("conductor_type"))
            records.append(AttachmentRecord(
                id=f"equipment:{key}",
                owner_name=self._equipment_owner(item),
                kind="wire" if conductor_type else "equipment",
                attachment_height_ft=Utils.parse_imperial_height(DynamicAttribute.resolve(item.get("attachment_height_ft"))),
                usage_category=UsageCategory.from_label(str(equipment_type or conductor_type or "")),
                description=self.describe_equipment(item),
                proposed=DynamicAttribute.is_set(DynamicAttribute.resolve(item.get("proposed"), False)),
                move_ft=self._move_feet(item),
            ))

        for wire_id, wire in self._photo_wires(pole):
            trace = self._get_trace(pole, wire.get("_trace"))
            trace_type = str(trace.get("_trace_type") or "").lower()
            cable_type = trace.get("cable_type") or ""
            kind = "guy" if trace_type in self.GUY_TRACE_TYPES else ("equipment" if trace_type == "equipment" else "wire")
            records.append(AttachmentRecord(
                id=f"wire:{wire.get('_trace') or wire_id}",
                owner_name=str(trace.get("company") or wire.get("company") or "").strip(),
                kind=kind,
                attachment_height_ft=Utils.parse_imperial_height(wire.get("_measured_height")),
                usage_category=UsageCategory.from_label(str(cable_type or trace.get("label") or "")),
                description=str(trace.get("label") or cable_type or "Wire"),
                proposed=DynamicAttribute.is_set(trace.get("proposed")) or DynamicAttribute.is_set(wire.get("proposed")),
                move_ft=self._move_feet(wire),
            ))

        return records

    def list_span_wires(self, pole, state):
        """Midspan annotations on spans touching the pole, as span-only AttachmentRecords"""
        records = []
        for connection_id, connection in self._connections_by_node.get(pole.node_id, []):
            sections = connection.get("sections")
            if not isinstance(sections, dict):
                continue
            for section_id, section in sections.items():
                annotations = Utils.get_nested_value(section, ["annotations"], {})
                if not isinstance(annotations, dict):
                    continue
                for annotation_id, annotation in annotations.items():
                    if not isinstance(annotation, dict):
                        continue
                    proposed = DynamicAttribute.is_set(self._annotation_value(annotation, "proposed"))
                    if state == AttachmentState.CURRENT and proposed:
                        continue
                    height = Utils.to_float(self._annotation_value(annotation, "height_ft_decimal"))
                    if height is None:
                        height = Utils.parse_imperial_height(self._annotation_value(annotation, "measured_height_ft"))
                    equipment_type = self._annotation_value(annotation, "equipment_type")
                    if height is None or not equipment_type:
                        continue
                    records.append(AttachmentRecord(
                        id=f"span:{connection_id}:{section_id}:{annotation_id}",
                        owner_name=str(self._annotation_value(annotation, "owner_name") or UNKNOWN),
                        kind="wire",
                        midspan_height_ft=height,
                        usage_category=UsageCategory.from_label(str(equipment_type)),
                        description=str(equipment_type),
                        proposed=proposed,
                    ))
        return records

    @staticmethod
    def _annotation_value(annotation, name):
        value = DynamicAttribute.attribute(annotation, name)
        if value is None:
            value = DynamicAttribute.resolve(annotation.get(name))
        return value

    @staticmethod
    def _span_group(record):
        return (record.owner_name.lower(), record.usage_category)

    def list_attachments(self, pole, state):
        """
        Attachments of one state as AttachmentRecords

        CURRENT holds existing items at measured height. PROPOSED holds every
        item with its mr_move applied. Midspan heights come from the lowest
        span annotation of the same owner and usage category; span wires with
        no pole counterpart are appended so the inventory is complete.
        """
        records = []
        for record in self._pole_records(pole):
            if state == AttachmentState.CURRENT:
                if record.proposed:
                    continue
            elif record.attachment_height_ft is not None and record.move_ft:
                record.attachment_height_ft += record.move_ft
            records.append(record)

        lowest_by_group = {}
        for span_wire in self.list_span_wires(pole, state):
            group = self._span_group(span_wire)
            current = lowest_by_group.get(group)
            if state == AttachmentState.PROPOSED and current is not None and current.proposed != span_wire.proposed:
                # A proposed annotation replaces the existing one for the same wire
                if span_wire.proposed:
                    lowest_by_group[group] = span_wire
                continue
            if current is None or span_wire.midspan_height_ft < current.midspan_height_ft:
                lowest_by_group[group] = span_wire

        used_groups = set()
        for record in records:
            group = self._span_group(record)
            if record.kind == "wire" and group in lowest_by_group:
                record.midspan_height_ft = lowest_by_group[group].midspan_height_ft
                used_groups.add(group)

        for group, span_wire in lowest_by_group.items():
            if group not in used_groups:
                records.append(span_wire)

        return records

    def find_attachments_by_owner(self, pole, state, predicate):
        return [a for a in self.list_attachments(pole, state) if predicate(a.owner_name)]

    def find_lowest_neutral_height(self, pole, state):
        """Lowest utility-owned neutral attachment height at the pole"""
        lowest = None
        for record in self.list_attachments(pole, state):
            if (record.usage_category == UsageCategory.NEUTRAL
                    and record.attachment_height_ft is not None
                    and OwnerMatcher.contains_utility(record.owner_name, self.utility_name)):
                if lowest is None or record.attachment_height_ft < lowest:
                    lowest = record.attachment_height_ft
        return lowest

    # ------------------------------------------------------------------
    # Pole-level attributes
    # ------------------------------------------------------------------

    def get_owner(self, pole, state=AttachmentState.CURRENT):
        for name in self.POLE_OWNER_ATTRIBUTES:
            owner = DynamicAttribute.attribute(pole.node, name)
            if owner:
                return str(owner).strip()
        return UNKNOWN

    def get_structure_description(self, pole):
        species = DynamicAttribute.attribute(pole.node, "pole_species")
        pole_class = DynamicAttribute.attribute(pole.node, "pole_class")
        if not species or not pole_class:
            return UNKNOWN
        height = Utils.parse_imperial_height(DynamicAttribute.attribute(pole.node, "pole_height"))
        if height:
            return f"{round(height)}-{pole_class} {species}"
        return f"{pole_class} {species}"

    def check_has_riser(self, pole):
        if DynamicAttribute.is_set(DynamicAttribute.attribute(pole.node, "riser")):
            return True

        for trace in self._node_traces(pole):
            if not DynamicAttribute.is_set(trace.get("proposed")):
                continue
            if str(trace.get("_trace_type") or "").lower() != "equipment":
                continue
            text = f"{trace.get('label') or ''} {trace.get('cable_type') or ''}".lower()
            if "riser" in text and self.owner_matcher.matches(trace.get("company")):
                return True

        for _, item in self._equipment_items(pole):
            equipment_type = DynamicAttribute.resolve(item.get("equipment_type"))
            if (isinstance(equipment_type, str) and equipment_type.strip().upper() == "RISER"
                    and DynamicAttribute.is_set(DynamicAttribute.resolve(item.get("proposed"), False))
                    and self.owner_matcher.matches(self._equipment_owner(item))):
                return True
        return False

    def check_has_guy(self, pole):
        if DynamicAttribute.is_set(DynamicAttribute.attribute(pole.node, "down_guy")):
            return True

        for trace in self._node_traces(pole):
            if (DynamicAttribute.is_set(trace.get("proposed"))
                    and str(trace.get("_trace_type") or "").lower() in self.GUY_TRACE_TYPES):
                return True

        for _, connection in self._connections_by_node.get(pole.node_id, []):
            proposed = DynamicAttribute.attribute(connection, "proposed", connection.get("proposed"))
            if not DynamicAttribute.is_set(proposed):
                continue
            button = str(connection.get("button") or "").lower()
            connection_type = str(DynamicAttribute.attribute(connection, "connection_type") or "").lower()
            if button in self.GUY_TRACE_TYPES or "guy" in connection_type or "anchor" in connection_type:
                return True
        return False

    def extract_load_percentage(self, pole):
        for name in self.PLA_ATTRIBUTES:
            value = DynamicAttribute.attribute(pole.node, name)
            formatted = Utils.format_percent_value(value)
            if formatted != NO_PERCENT:
                return formatted
        return NO_PERCENT

    def has_proposed_attacher(self, pole, predicate):
        """A proposed trace or equipment item owned by the attacher of interest"""
        for trace in self._node_traces(pole):
            if DynamicAttribute.is_set(trace.get("proposed")) and predicate(trace.get("company")):
                return True
        for _, item in self._equipment_items(pole):
            if (DynamicAttribute.is_set(DynamicAttribute.resolve(item.get("proposed"), False))
                    and predicate(self._equipment_owner(item))):
                return True
        return False

    def has_moved_attacher(self, pole, predicate):
        """A non-zero make-ready move on an attacher wire or equipment item"""
        for _, wire in self._photo_wires(pole):
            company = self._get_trace(pole, wire.get("_trace")).get("company") or wire.get("company")
            if self._move_feet(wire) != 0 and predicate(company):
                return True
        for _, item in self._equipment_items(pole):
            if self._move_feet(item) != 0 and predicate(self._equipment_owner(item)):
                return True
        return False

    # ------------------------------------------------------------------
    # Spans
    # ------------------------------------------------------------------

    @staticmethod
    def is_reference_connection(connection):
        connection_type = str(DynamicAttribute.attribute(connection, "connection_type") or "").lower()
        is_reference = DynamicAttribute.is_set(DynamicAttribute.attribute(connection, "is_reference", False))
        return is_reference or "ref" in connection_type

    def get_span_to_pole(self, pole):
        """Pole number at the far end of the first span, preferring pole-to-pole spans"""
        connections = self._connections_by_node.get(pole.node_id, [])
        for want_reference in (False, True):
            for _, connection in connections:
                if self.is_reference_connection(connection) != want_reference:
                    continue
                other_id = connection.get("node_id_2") if connection.get("node_id_1") == pole.node_id \
                    else connection.get("node_id_1")
                other = self._all_nodes.get(other_id)
                if not isinstance(other, dict):
                    continue
                other_pole = KatapultNode(other_id, other)
                if want_reference:
                    return f"REF ({self.get_pole_number(other_pole)})"
                if self._is_pole_node(other):
                    return self.get_pole_number(other_pole)
        return None
