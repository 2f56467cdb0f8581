import logging
import pandas as pd
from pathlib import Path
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows
from ..models.data_models import MatchType, ReportRow

THIN = Side(style="thin", color="000000")
CELL_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
GROUP_FILL = PatternFill(start_color="B4C6E7", end_color="B4C6E7", fill_type="solid")
ONLY_FILL = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")
MAX_COLUMN_WIDTH = 45


class OutputGenerator:
    """Handles Excel output generation"""

    def __init__(self, config):
        self.config = config or {}
        self.output_settings = self.config.get("output_settings", {})

    def write_output(self, result, output_file):
        """Write a ReportResult to a new Excel workbook"""
        try:
            if not result.rows:
                logging.warning("No report rows to write")

            wb = Workbook()
            ws = wb.active
            ws.title = self.output_settings.get("worksheet_name", "Make Ready Report")

            data_start_row = self._write_headers(ws, result.layout)
            self._write_rows(ws, result.rows, result.row_values, result.layout, data_start_row)
            self._write_summary(wb, result.summary)

            if self.config.get("processing_options", {}).get("include_diagnostics", True):
                sheet_name = self.output_settings.get("diagnostics_sheet_name", "Pole Matching")
                self._write_dataframe(wb, sheet_name, result.match_table)

            output_path = Path(output_file)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
            logging.info(f"Successfully wrote {len(result.rows)} rows to {output_path}")
            return str(output_path)

        except Exception as e:
            logging.error(f"Error writing output: {e}")
            raise

    def _write_headers(self, ws, layout):
        """Write grouped header rows; returns the first data row"""
        header_row = self.output_settings.get("header_row", 1)
        depth = layout["header_depth"]
        last_header_row = header_row + depth - 1

        for level, first_col, last_col, title in layout["groups"]:
            row = header_row + level
            self._style_header_range(ws, row, first_col + 1, row, last_col + 1, GROUP_FILL)
            ws.cell(row=row, column=first_col + 1).value = title
            if last_col > first_col:
                ws.merge_cells(start_row=row, start_column=first_col + 1, end_row=row, end_column=last_col + 1)

        for col_idx, (header, path) in enumerate(zip(layout["headers"], layout["paths"]), start=1):
            leaf_row = header_row + len(path)
            self._style_header_range(ws, leaf_row, col_idx, last_header_row, col_idx, HEADER_FILL)
            ws.cell(row=leaf_row, column=col_idx).value = header
            if leaf_row < last_header_row:
                ws.merge_cells(start_row=leaf_row, start_column=col_idx, end_row=last_header_row, end_column=col_idx)

        data_start_row = max(self.output_settings.get("data_start_row", last_header_row + 1), last_header_row + 1)
        ws.freeze_panes = ws.cell(row=data_start_row, column=1)
        return data_start_row

    @staticmethod
    def _style_header_range(ws, first_row, first_col, last_row, last_col, fill):
        for row in range(first_row, last_row + 1):
            for col in range(first_col, last_col + 1):
                cell = ws.cell(row=row, column=col)
                cell.font = Font(bold=True)
                cell.fill = fill
                cell.border = CELL_BORDER
                cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    def _write_rows(self, ws, rows, row_values, layout, data_start_row):
        fields = layout["fields"]
        widths = [len(str(header)) for header in layout["headers"]]
        status_col = fields.index("match_status") if "match_status" in fields else None

        group_fill = None
        for offset, (row, values) in enumerate(zip(rows, row_values)):
            excel_row = data_start_row + offset
            if row.is_group_start:
                group_fill = ONLY_FILL if row.match_status in (
                    MatchType.label(MatchType.SOURCE_A_ONLY), MatchType.label(MatchType.SOURCE_B_ONLY)) else None
            for col_idx, value in enumerate(values, start=1):
                cell = ws.cell(row=excel_row, column=col_idx)
                cell.value = value
                cell.border = CELL_BORDER
                cell.alignment = Alignment(vertical="top", wrap_text=True)
                if group_fill is not None and status_col is not None and col_idx == status_col + 1:
                    cell.fill = group_fill
                widths[col_idx - 1] = max(widths[col_idx - 1], len(str(value)) if value is not None else 0)

        if self.output_settings.get("merge_pole_cells", True):
            self._merge_pole_groups(ws, rows, fields, data_start_row)

        for col_idx, width in enumerate(widths, start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max(width + 2, 8), MAX_COLUMN_WIDTH)

    @staticmethod
    def _merge_pole_groups(ws, rows, fields, data_start_row):
        """Merge pole-level cells down each multi-row pole group"""
        pole_columns = [idx + 1 for idx, field in enumerate(fields) if field in ReportRow.POLE_LEVEL_FIELDS]
        group_start = None
        merged = 0
        for offset in range(len(rows) + 1):
            if offset == len(rows) or rows[offset].is_group_start:
                if group_start is not None and offset - group_start > 1:
                    first_row = data_start_row + group_start
                    last_row = data_start_row + offset - 1
                    for col in pole_columns:
                        ws.merge_cells(start_row=first_row, start_column=col, end_row=last_row, end_column=col)
                    merged += 1
                group_start = offset
        logging.debug(f"Merged pole-level cells for {merged} multi-row pole groups")

    def _write_summary(self, wb, summary):
        ws = wb.create_sheet(self.output_settings.get("summary_sheet_name", "Summary"))
        lines = [
            ("Attacher", self.config.get("attacher_name", "Charter/Spectrum")),
            ("Total Poles", summary.total_poles),
            ("Matched Poles", summary.matched_poles),
            ("SPIDA Only Poles", summary.source_a_only_poles),
            ("Katapult Only Poles", summary.source_b_only_poles),
            ("Total Rows", summary.total_rows),
        ]
        for match_type in MatchType.MATCHED:
            lines.append((f"Matched: {MatchType.label(match_type)}", summary.match_type_counts.get(match_type, 0)))

        ws.cell(row=1, column=1).value = "Metric"
        ws.cell(row=1, column=2).value = "Value"
        self._style_header_range(ws, 1, 1, 1, 2, HEADER_FILL)
        for row_idx, (label, value) in enumerate(lines, start=2):
            ws.cell(row=row_idx, column=1).value = label
            ws.cell(row=row_idx, column=2).value = value
            ws.cell(row=row_idx, column=1).border = CELL_BORDER
            ws.cell(row=row_idx, column=2).border = CELL_BORDER
        ws.column_dimensions["A"].width = 36
        ws.column_dimensions["B"].width = 12

    def _write_dataframe(self, wb, sheet_name, df):
        if df is None:
            return
        ws = wb.create_sheet(sheet_name)
        clean = df.astype(object).where(pd.notnull(df), None)
        for row_idx, values in enumerate(dataframe_to_rows(clean, index=False, header=True), start=1):
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx).value = value
                ws.cell(row=row_idx, column=col_idx).border = CELL_BORDER
        if len(df.columns):
            self._style_header_range(ws, 1, 1, 1, len(df.columns), HEADER_FILL)
        logging.info(f"Wrote {len(df)} rows to sheet '{sheet_name}'")
