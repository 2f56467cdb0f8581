# This file contains data models used throughout the application, defining structures for poles,
# attachments, correlation results and report rows.


class MatchType:
    """How a pole from one source was paired with the other source"""
    EXACT = "EXACT"
    NORMALIZED = "NORMALIZED"
    GEO = "GEO"
    SOURCE_A_ONLY = "SOURCE_A_ONLY"
    SOURCE_B_ONLY = "SOURCE_B_ONLY"

    MATCHED = (EXACT, NORMALIZED, GEO)
    ALL = (EXACT, NORMALIZED, GEO, SOURCE_A_ONLY, SOURCE_B_ONLY)

    LABELS = {
        EXACT: "Full Match",
        NORMALIZED: "Full Match (Normalized ID)",
        GEO: "Full Match (Location)",
        SOURCE_A_ONLY: "SPIDA Only",
        SOURCE_B_ONLY: "Katapult Only",
    }

    @staticmethod
    def label(match_type):
        return MatchType.LABELS.get(match_type, match_type)


class AttachmentState:
    CURRENT = "CURRENT"
    PROPOSED = "PROPOSED"


class AttachmentAction:
    INSTALL = "I"
    RELOCATE = "R"
    EXISTING = "E"
    UNKNOWN = "Unknown"


class UsageCategory:
    """Usage category of a wire or piece of equipment"""
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    NEUTRAL = "NEUTRAL"
    SERVICE = "SERVICE"
    COMMUNICATION = "COMMUNICATION"
    COMMUNICATION_BUNDLE = "COMMUNICATION_BUNDLE"
    OTHER = "OTHER"

    ALL = (PRIMARY, SECONDARY, NEUTRAL, SERVICE, COMMUNICATION, COMMUNICATION_BUNDLE, OTHER)
    ELECTRICAL = (PRIMARY, SECONDARY, NEUTRAL, SERVICE)
    COMMUNICATIONS = (COMMUNICATION, COMMUNICATION_BUNDLE)

    POWER_KEYWORDS = (
        ("neutral", NEUTRAL),
        ("primary", PRIMARY),
        ("secondary", SECONDARY),
        ("service", SERVICE),
    )
    COMM_KEYWORDS = ("catv", "fiber", "coax", "telco", "telephone", "com", "cable")

    @staticmethod
    def from_label(label):
        """
        Classify a usage group or free-text wire/equipment label

        Args:
            label (str): SPIDA usage group ("NEUTRAL") or Katapult label ("CATV Com")

        Returns:
            str: One of the UsageCategory values
        """
        if not label or not isinstance(label, str):
            return UsageCategory.OTHER

        text = label.strip()
        if text.upper() in UsageCategory.ALL:
            return text.upper()

        text = text.lower()
        if "bundle" in text:
            return UsageCategory.COMMUNICATION_BUNDLE
        if "communication" in text:
            return UsageCategory.COMMUNICATION
        for keyword, category in UsageCategory.POWER_KEYWORDS:
            if keyword in text:
                return category
        if any(keyword in text for keyword in UsageCategory.COMM_KEYWORDS):
            return UsageCategory.COMMUNICATION
        return UsageCategory.OTHER


class PoleIdentifier:
    """One identifier (label, tag or alias) pointing at a pole record"""

    def __init__(self, id, normalized_id, source_ref, source_index, latitude=None, longitude=None):
        self.id = id
        self.normalized_id = normalized_id
        self.source_ref = source_ref
        self.source_index = source_index
        self.latitude = latitude
        self.longitude = longitude

    def has_coordinates(self):
        return self.latitude is not None and self.longitude is not None

    def __repr__(self):
        return f"PoleIdentifier(id={self.id!r}, source_index={self.source_index!r})"


class AttachmentRecord:
    def __init__(self, id, owner_name, kind, attachment_height_ft=None, midspan_height_ft=None,
                 usage_category=UsageCategory.OTHER, description="", proposed=False, move_ft=0.0):
        self.id = id
        self.owner_name = owner_name
        self.kind = kind
        self.attachment_height_ft = attachment_height_ft
        self.midspan_height_ft = midspan_height_ft
        self.usage_category = usage_category
        self.description = description
        self.proposed = proposed
        self.move_ft = move_ft

    def __repr__(self):
        return (f"AttachmentRecord(id={self.id!r}, owner={self.owner_name!r}, kind={self.kind!r}, "
                f"height={self.attachment_height_ft!r})")


class CorrelatedPole:
    """A SPIDA pole and/or Katapult node believed to be the same physical pole"""

    def __init__(self, spida_pole, katapult_node, match_type, spida_id=None, katapult_id=None, distance_m=None):
        self.spida_pole = spida_pole
        self.katapult_node = katapult_node
        self.match_type = match_type
        self.spida_id = spida_id
        self.katapult_id = katapult_id
        self.distance_m = distance_m

    @property
    def is_matched(self):
        return self.match_type in MatchType.MATCHED


class AttacherEntry:
    def __init__(self, owner, description, existing_height_ft=None, proposed_height_ft=None,
                 existing_midspan_ft=None, proposed_midspan_ft=None):
        self.owner = owner
        self.description = description
        self.existing_height_ft = existing_height_ft
        self.proposed_height_ft = proposed_height_ft
        self.existing_midspan_ft = existing_midspan_ft
        self.proposed_midspan_ft = proposed_midspan_ft

    @property
    def sort_height(self):
        if self.existing_height_ft is not None:
            return self.existing_height_ft
        return self.proposed_height_ft

    @property
    def label(self):
        return f"{self.description} ({self.owner})"


class PoleAnalysis:
    """Derived per-pole fields produced by the rule engine"""

    def __init__(self, correlated_pole):
        self.correlated_pole = correlated_pole
        self.attachment_action = AttachmentAction.UNKNOWN
        self.pole_owner = "Unknown"
        self.pole_number = "Unknown"
        self.pole_structure = "Unknown"
        self.proposed_riser = False
        self.proposed_guy = False
        self.pla = "--"
        self.construction_grade = "Unknown"
        self.lowest_comm_height = None
        self.lowest_electrical_height = None
        self.span_from_pole = "N/A"
        self.span_to_pole = "N/A"
        self.attachers = []

    @property
    def match_type(self):
        return self.correlated_pole.match_type


class ReportRow:
    FIELDS = (
        "operation_number",
        "attachment_action",
        "pole_owner",
        "pole_number",
        "pole_structure",
        "proposed_riser",
        "proposed_guy",
        "pla",
        "construction_grade",
        "height_lowest_com",
        "height_lowest_electrical",
        "span_from_pole",
        "span_to_pole",
        "attacher_description",
        "existing_attachment_height",
        "proposed_attachment_height",
        "existing_midspan",
        "proposed_midspan",
        "match_status",
    )

    # Blank on continuation rows of a pole group
    POLE_LEVEL_FIELDS = FIELDS[:13] + ("match_status",)

    def __init__(self, is_group_start=True, **values):
        self.is_group_start = is_group_start
        for field in self.FIELDS:
            setattr(self, field, values.get(field, ""))

    def get(self, field, default=""):
        return getattr(self, field, default)

    def to_dict(self):
        return {field: getattr(self, field) for field in self.FIELDS}


class ReportSummary:
    def __init__(self, total_poles=0, matched_poles=0, source_a_only_poles=0, source_b_only_poles=0,
                 total_rows=0, match_type_counts=None):
        self.total_poles = total_poles
        self.matched_poles = matched_poles
        self.source_a_only_poles = source_a_only_poles
        self.source_b_only_poles = source_b_only_poles
        self.total_rows = total_rows
        self.match_type_counts = match_type_counts if match_type_counts is not None else {}

    def to_dict(self):
        return {
            "totalPoles": self.total_poles,
            "matchedPoles": self.matched_poles,
            "sourceAOnlyPoles": self.source_a_only_poles,
            "sourceBOnlyPoles": self.source_b_only_poles,
            "totalRows": self.total_rows,
        }
