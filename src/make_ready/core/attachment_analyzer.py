import logging
from .utils import Utils, UNKNOWN, NO_DATA, NO_PERCENT
from .owner_matcher import OwnerMatcher
from ..models.data_models import (
    AttachmentAction, AttachmentState, AttacherEntry, PoleAnalysis, UsageCategory
)


class AttachmentAnalyzer:
    """Derives make-ready fields for correlated poles"""

    def __init__(self, spida_extractor=None, katapult_extractor=None, owner_matcher=None,
                 utility_name="CPS", utility_display_name="CPS Energy", relocate_tolerance_ft=0.1):
        self.spida = spida_extractor
        self.katapult = katapult_extractor
        self.owner_matcher = owner_matcher or OwnerMatcher()
        self.utility_name = utility_name
        self.utility_display_name = utility_display_name
        self.relocate_tolerance_ft = float(relocate_tolerance_ft)

    # ------------------------------------------------------------------
    # Attachment action
    # ------------------------------------------------------------------

    def determine_attachment_action(self, current, proposed, katapult_node=None):
        """
        Work out the attacher's action code from the strongest available signal

        Args:
            current (list): AttachmentRecords of the current design
            proposed (list): AttachmentRecords of the proposed design
            katapult_node (KatapultNode, optional): Field survey node for the same pole

        Returns:
            str: "I", "R", "E" or "Unknown"
        """
        if katapult_node is not None and self.katapult is not None:
            if self.katapult.has_proposed_attacher(katapult_node, self.owner_matcher):
                return AttachmentAction.INSTALL
            if self.katapult.has_moved_attacher(katapult_node, self.owner_matcher):
                return AttachmentAction.RELOCATE

        current_attacher = [a for a in current if self.owner_matcher.matches(a.owner_name)]
        proposed_attacher = [a for a in proposed if self.owner_matcher.matches(a.owner_name)]

        if proposed_attacher and not current_attacher:
            return AttachmentAction.INSTALL

        if proposed_attacher and current_attacher:
            current_by_id = {a.id: a for a in current_attacher}
            for record in proposed_attacher:
                existing = current_by_id.get(record.id)
                if existing is None:
                    continue
                if self._height_changed(existing.attachment_height_ft, record.attachment_height_ft):
                    return AttachmentAction.RELOCATE
            return AttachmentAction.EXISTING

        return AttachmentAction.INSTALL if proposed_attacher else AttachmentAction.UNKNOWN

    def _height_changed(self, before, after):
        if before is None or after is None:
            return False
        return abs(after - before) > self.relocate_tolerance_ft

    # ------------------------------------------------------------------
    # Heights
    # ------------------------------------------------------------------

    def find_lowest_heights(self, current):
        """
        Lowest communication and utility electrical midspan heights

        Returns:
            tuple: (lowest communication height, lowest electrical height);
            None where no qualifying wire exists
        """
        lowest_comm = None
        lowest_electrical = None
        for record in current:
            height = record.midspan_height_ft
            if height is None:
                continue
            if record.usage_category in UsageCategory.COMMUNICATIONS:
                if lowest_comm is None or height < lowest_comm:
                    lowest_comm = height
            elif (record.usage_category in UsageCategory.ELECTRICAL
                    and OwnerMatcher.contains_utility(record.owner_name, self.utility_name)):
                if lowest_electrical is None or height < lowest_electrical:
                    lowest_electrical = height
        return lowest_comm, lowest_electrical

    def find_reference_neutral(self, spida_pole=None, katapult_node=None):
        """Lowest utility neutral: field survey first, then the SPIDA designs"""
        if katapult_node is not None and self.katapult is not None:
            height = self.katapult.find_lowest_neutral_height(katapult_node, AttachmentState.CURRENT)
            if height is not None:
                return height
        if spida_pole is not None and self.spida is not None:
            for state in (AttachmentState.CURRENT, AttachmentState.PROPOSED):
                height = self.spida.find_lowest_neutral_height(spida_pole, state)
                if height is not None:
                    return height
        return None

    # ------------------------------------------------------------------
    # Attachers
    # ------------------------------------------------------------------

    def collect_attachers(self, spida_pole=None, katapult_node=None):
        """
        Attachments of interest for one pole, one entry per owner and description

        With a known neutral the list holds the neutral and everything below it
        from both sources, top of pole first. Without one it holds the attacher's
        own attachments in encounter order.
        """
        sources = []
        if katapult_node is not None and self.katapult is not None:
            sources.append((self.katapult.list_attachments(katapult_node, AttachmentState.CURRENT),
                            self.katapult.list_attachments(katapult_node, AttachmentState.PROPOSED)))
        if spida_pole is not None and self.spida is not None:
            sources.append((self.spida.list_attachments(spida_pole, AttachmentState.CURRENT),
                            self.spida.list_attachments(spida_pole, AttachmentState.PROPOSED)))

        neutral = self.find_reference_neutral(spida_pole, katapult_node)
        entries = {}
        if neutral is not None:
            entries[("neutral", self.utility_display_name.lower())] = AttacherEntry(
                owner=self.utility_display_name, description="Neutral", existing_height_ft=neutral)

        for current, proposed in sources:
            found_before = len(entries)
            proposed_by_id = {record.id: record for record in proposed}
            current_ids = set()

            for record in current:
                current_ids.add(record.id)
                counterpart = proposed_by_id.get(record.id)
                if self._is_of_interest(record, counterpart, neutral):
                    self._add_entry(entries, record, counterpart, keep_highest=neutral is not None)

            for record in proposed:
                if record.id not in current_ids and self._is_of_interest(None, record, neutral):
                    self._add_entry(entries, None, record, keep_highest=neutral is not None)

            if neutral is None and len(entries) > found_before:
                break

        attachers = list(entries.values())
        if neutral is not None:
            attachers.sort(key=lambda e: (e.sort_height is None, -(e.sort_height or 0.0)))
        return attachers

    def _is_of_interest(self, current_record, proposed_record, neutral):
        record = current_record or proposed_record
        if record.kind == "guy":
            return False
        height = current_record.attachment_height_ft if current_record is not None else None
        if height is None and proposed_record is not None:
            height = proposed_record.attachment_height_ft
        if height is None:
            return False
        if neutral is None:
            return self.owner_matcher.matches(record.owner_name)
        return height < neutral

    def _add_entry(self, entries, current_record, proposed_record, keep_highest=False):
        """Add or merge an entry; duplicates keep the highest one when keep_highest is set, else the first"""
        base = current_record or proposed_record
        key = ((base.description or "").lower(), (base.owner_name or "").lower())
        if key in entries and not keep_highest:
            return

        existing_height = current_record.attachment_height_ft if current_record is not None else None
        existing_midspan = current_record.midspan_height_ft if current_record is not None else None
        proposed_height = proposed_record.attachment_height_ft if proposed_record is not None else None
        proposed_midspan = proposed_record.midspan_height_ft if proposed_record is not None else None

        # Proposed values are only reported when they change
        if Utils.format_height(proposed_height) == Utils.format_height(existing_height):
            proposed_height = None
        if Utils.format_height(proposed_midspan) == Utils.format_height(existing_midspan):
            proposed_midspan = None

        entry = AttacherEntry(
            owner=base.owner_name or UNKNOWN,
            description=base.description or "Attachment",
            existing_height_ft=existing_height,
            proposed_height_ft=proposed_height,
            existing_midspan_ft=existing_midspan,
            proposed_midspan_ft=proposed_midspan,
        )
        previous = entries.get(key)
        if previous is not None and (entry.sort_height is None or
                                     (previous.sort_height is not None and previous.sort_height >= entry.sort_height)):
            return
        entries[key] = entry

    # ------------------------------------------------------------------
    # Whole pole
    # ------------------------------------------------------------------

    def analyze(self, correlated_pole):
        """Build every derived field for one correlated pole"""
        analysis = PoleAnalysis(correlated_pole)
        spida_pole = correlated_pole.spida_pole
        node = correlated_pole.katapult_node

        if spida_pole is not None:
            self._analyze_spida_pole(analysis, spida_pole, node)
        elif node is not None:
            self._analyze_katapult_only(analysis, node)

        analysis.span_from_pole = analysis.pole_number
        analysis.attachers = self.collect_attachers(spida_pole, node)
        logging.debug(f"Pole {analysis.pole_number}: action {analysis.attachment_action}, "
                      f"{len(analysis.attachers)} attacher entries")
        return analysis

    def _analyze_spida_pole(self, analysis, pole, node):
        current = self.spida.list_attachments(pole, AttachmentState.CURRENT)
        proposed = self.spida.list_attachments(pole, AttachmentState.PROPOSED)

        analysis.pole_number = self.spida.get_pole_number(pole)
        analysis.attachment_action = self.determine_attachment_action(current, proposed, node)

        analysis.pole_owner = self.spida.get_owner(pole)
        if analysis.pole_owner == UNKNOWN and node is not None:
            analysis.pole_owner = self.katapult.get_owner(node)

        analysis.pole_structure = self.spida.get_structure_description(pole)
        if analysis.pole_structure == UNKNOWN and node is not None:
            analysis.pole_structure = self.katapult.get_structure_description(node)

        analysis.proposed_riser = self.spida.check_has_riser(pole)
        analysis.proposed_guy = self.spida.check_has_guy(pole)
        analysis.pla = self.spida.extract_load_percentage(pole)
        if analysis.pla == NO_PERCENT and node is not None:
            analysis.pla = self.katapult.extract_load_percentage(node)
        analysis.construction_grade = self.spida.get_construction_grade(pole)

        lowest_comm, lowest_electrical = self.find_lowest_heights(current)
        if node is not None and (lowest_comm is None or lowest_electrical is None):
            field_comm, field_electrical = self.find_lowest_heights(
                self.katapult.list_attachments(node, AttachmentState.CURRENT))
            lowest_comm = lowest_comm if lowest_comm is not None else field_comm
            lowest_electrical = lowest_electrical if lowest_electrical is not None else field_electrical
        analysis.lowest_comm_height = lowest_comm
        analysis.lowest_electrical_height = lowest_electrical

        to_pole = self.katapult.get_span_to_pole(node) if node is not None else None
        analysis.span_to_pole = to_pole or self.spida.get_next_pole_label(pole) or NO_DATA

    def _analyze_katapult_only(self, analysis, node):
        analysis.pole_number = self.katapult.get_pole_number(node)
        analysis.attachment_action = AttachmentAction.INSTALL
        analysis.pole_owner = self.katapult.get_owner(node)
        analysis.pole_structure = self.katapult.get_structure_description(node)
        analysis.proposed_riser = self.katapult.check_has_riser(node)
        analysis.proposed_guy = self.katapult.check_has_guy(node)
        analysis.pla = self.katapult.extract_load_percentage(node)
        analysis.construction_grade = NO_DATA

        current = self.katapult.list_attachments(node, AttachmentState.CURRENT)
        analysis.lowest_comm_height, analysis.lowest_electrical_height = self.find_lowest_heights(current)
        analysis.span_to_pole = self.katapult.get_span_to_pole(node) or NO_DATA
