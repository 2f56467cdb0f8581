import logging
import pandas as pd
from .utils import Utils, NO_DATA
from ..models.data_models import MatchType, ReportRow, ReportSummary

GROUP_SEPARATOR = " / "
NO_ATTACHMENTS = "No attachments found"


class ReportAssembler:
    """Flattens pole analyses into grouped report rows and a column layout"""

    def __init__(self, column_mappings=None):
        if not column_mappings:
            column_mappings = [["", field, field.replace("_", " ").title()] for field in ReportRow.FIELDS]
        self.column_mappings = []
        for mapping in column_mappings:
            group, field, header = mapping
            if field not in ReportRow.FIELDS:
                logging.warning(f"Ignoring column mapping for unknown report field '{field}'")
                continue
            self.column_mappings.append((group or "", field, header))

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def build_rows(self, analyses):
        """One row group per pole, numbered in order"""
        rows = []
        for operation_number, analysis in enumerate(analyses, start=1):
            rows.extend(self.build_pole_rows(analysis, operation_number))
        logging.info(f"Assembled {len(rows)} report rows for {len(analyses)} poles")
        return rows

    def build_pole_rows(self, analysis, operation_number):
        """
        Rows for one pole

        Pole-level columns are filled on the first row only; continuation rows
        carry the attacher columns.
        """
        pole_values = {
            "operation_number": operation_number,
            "attachment_action": analysis.attachment_action,
            "pole_owner": analysis.pole_owner,
            "pole_number": analysis.pole_number,
            "pole_structure": analysis.pole_structure,
            "proposed_riser": "Yes" if analysis.proposed_riser else "No",
            "proposed_guy": "Yes" if analysis.proposed_guy else "No",
            "pla": analysis.pla,
            "construction_grade": analysis.construction_grade,
            "height_lowest_com": Utils.format_height(analysis.lowest_comm_height),
            "height_lowest_electrical": Utils.format_height(analysis.lowest_electrical_height),
            "span_from_pole": analysis.span_from_pole,
            "span_to_pole": analysis.span_to_pole,
            "match_status": MatchType.label(analysis.match_type),
        }

        rows = []
        for index, entry in enumerate(analysis.attachers or [None]):
            values = dict(pole_values) if index == 0 else {}
            values.update(self._attacher_values(entry))
            rows.append(ReportRow(is_group_start=index == 0, **values))
        return rows

    @staticmethod
    def _attacher_values(entry):
        if entry is None:
            return {
                "attacher_description": NO_ATTACHMENTS,
                "existing_attachment_height": NO_DATA,
                "proposed_attachment_height": NO_DATA,
                "existing_midspan": NO_DATA,
                "proposed_midspan": NO_DATA,
            }
        return {
            "attacher_description": entry.label,
            "existing_attachment_height": Utils.format_height(entry.existing_height_ft),
            "proposed_attachment_height": Utils.format_height(entry.proposed_height_ft)
            if entry.proposed_height_ft is not None else "",
            "existing_midspan": Utils.format_height(entry.existing_midspan_ft),
            "proposed_midspan": Utils.format_height(entry.proposed_midspan_ft)
            if entry.proposed_midspan_ft is not None else "",
        }

    @staticmethod
    def build_summary(correlated, rows):
        counts = {match_type: 0 for match_type in MatchType.ALL}
        for pole in correlated:
            counts[pole.match_type] = counts.get(pole.match_type, 0) + 1

        return ReportSummary(
            total_poles=len(correlated),
            matched_poles=sum(counts[m] for m in MatchType.MATCHED),
            source_a_only_poles=counts[MatchType.SOURCE_A_ONLY],
            source_b_only_poles=counts[MatchType.SOURCE_B_ONLY],
            total_rows=len(rows),
            match_type_counts=counts,
        )

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def column_layout(self):
        """
        Describe the header structure for a tabular sink

        Returns:
            dict: fields, headers and group paths per column, the number of
            header rows, and the header groups as (level, first column,
            last column, title) with 0-based column indexes
        """
        fields = [field for _, field, _ in self.column_mappings]
        headers = [header for _, _, header in self.column_mappings]
        paths = [group.split(GROUP_SEPARATOR) if group else [] for group, _, _ in self.column_mappings]
        header_depth = max([len(path) for path in paths] + [0]) + 1

        groups = []
        for level in range(header_depth - 1):
            start = None
            for col in range(len(paths) + 1):
                prefix = paths[col][:level + 1] if col < len(paths) and len(paths[col]) > level else None
                if start is not None and prefix != paths[start][:level + 1]:
                    groups.append((level, start, col - 1, paths[start][level]))
                    start = None
                if start is None and prefix is not None:
                    start = col

        return {
            "fields": fields,
            "headers": headers,
            "paths": paths,
            "header_depth": header_depth,
            "groups": groups,
            "qualified_headers": [GROUP_SEPARATOR.join(path + [header]) for path, header in zip(paths, headers)],
        }

    def row_values(self, rows):
        """Row value lists aligned with the layout's columns"""
        fields = [field for _, field, _ in self.column_mappings]
        return [[row.get(field) for field in fields] for row in rows]

    def to_dataframe(self, rows):
        layout = self.column_layout()
        return pd.DataFrame(self.row_values(rows), columns=layout["qualified_headers"])
