import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from make_ready.core.config_manager import ConfigManager
from make_ready.core.report_assembler import ReportAssembler, NO_ATTACHMENTS
from make_ready.models.data_models import (
    AttacherEntry, CorrelatedPole, MatchType, PoleAnalysis, ReportRow
)


def analysis_for(match_type, pole_number, attachers=()):
    analysis = PoleAnalysis(CorrelatedPole(None, None, match_type))
    analysis.pole_number = pole_number
    analysis.span_from_pole = pole_number
    analysis.attachment_action = "I"
    analysis.lowest_comm_height = 17.46
    analysis.attachers = list(attachers)
    return analysis


class TestReportAssembler(unittest.TestCase):

    def setUp(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            mappings = ConfigManager(temp_dir).get_default_config()["column_mappings"]
        self.assembler = ReportAssembler(mappings)
        self.entries = [
            AttacherEntry("CPS Energy", "Neutral", existing_height_ft=30.0),
            AttacherEntry("Charter", "Fiber Cable", proposed_height_ft=22.0, proposed_midspan_ft=19.0),
        ]

    def test_group_rows(self):
        rows = self.assembler.build_rows([
            analysis_for(MatchType.EXACT, "PL1", self.entries),
            analysis_for(MatchType.SOURCE_A_ONLY, "PL2"),
        ])
        self.assertEqual(len(rows), 3)
        self.assertEqual([r.is_group_start for r in rows], [True, False, True])
        self.assertEqual([r.operation_number for r in rows], [1, "", 2])

        first, continuation, placeholder = rows
        self.assertEqual(first.pole_number, "PL1")
        self.assertEqual(first.match_status, "Full Match")
        self.assertEqual(first.height_lowest_com, "17.5'")
        self.assertEqual(first.height_lowest_electrical, "N/A")
        self.assertEqual(first.proposed_riser, "No")
        self.assertEqual(first.attacher_description, "Neutral (CPS Energy)")
        self.assertEqual(first.existing_attachment_height, "30.0'")
        self.assertEqual(first.proposed_attachment_height, "")

        for field in ReportRow.POLE_LEVEL_FIELDS:
            self.assertEqual(continuation.get(field), "")
        self.assertEqual(continuation.attacher_description, "Fiber Cable (Charter)")
        self.assertEqual(continuation.existing_attachment_height, "N/A")
        self.assertEqual(continuation.proposed_attachment_height, "22.0'")
        self.assertEqual(continuation.proposed_midspan, "19.0'")

        self.assertEqual(placeholder.attacher_description, NO_ATTACHMENTS)
        self.assertEqual(placeholder.existing_midspan, "N/A")
        self.assertEqual(placeholder.match_status, "SPIDA Only")

    def test_summary(self):
        correlated = [
            CorrelatedPole("a", "b", MatchType.EXACT),
            CorrelatedPole("c", "d", MatchType.GEO),
            CorrelatedPole("e", None, MatchType.SOURCE_A_ONLY),
            CorrelatedPole(None, "f", MatchType.SOURCE_B_ONLY),
        ]
        summary = ReportAssembler.build_summary(correlated, [ReportRow()] * 6)
        self.assertEqual(summary.to_dict(), {
            "totalPoles": 4,
            "matchedPoles": 2,
            "sourceAOnlyPoles": 1,
            "sourceBOnlyPoles": 1,
            "totalRows": 6,
        })
        self.assertEqual(summary.match_type_counts[MatchType.NORMALIZED], 0)

    def test_column_layout(self):
        layout = self.assembler.column_layout()
        self.assertEqual(len(layout["fields"]), 19)
        self.assertEqual(layout["header_depth"], 3)
        self.assertEqual(layout["groups"], [
            (0, 9, 10, "Existing Mid-Span Data"),
            (0, 11, 12, "Mid-Span"),
            (0, 13, 17, "Make Ready Data"),
            (1, 14, 15, "Attachment Height"),
            (1, 16, 17, "Mid-Span"),
        ])
        self.assertEqual(layout["qualified_headers"][14], "Make Ready Data / Attachment Height / Existing")
        self.assertEqual(layout["headers"][1], "Attachment Action: (I)nstalling (R)emoving (E)xisting")

    def test_unknown_mapping_ignored(self):
        assembler = ReportAssembler([["", "pole_number", "Pole #"], ["", "nonsense", "X"]])
        self.assertEqual(assembler.column_layout()["fields"], ["pole_number"])

    def test_default_mappings(self):
        layout = ReportAssembler().column_layout()
        self.assertEqual(layout["fields"], list(ReportRow.FIELDS))
        self.assertEqual(layout["header_depth"], 1)
        self.assertEqual(layout["groups"], [])

    def test_to_dataframe(self):
        rows = self.assembler.build_rows([analysis_for(MatchType.EXACT, "PL1", self.entries)])
        df = self.assembler.to_dataframe(rows)
        self.assertEqual(df.shape, (2, 19))
        self.assertEqual(df.iloc[0]["Pole #"], "PL1")
        self.assertEqual(df.iloc[1]["Make Ready Data / Attacher Description"], "Fiber Cable (Charter)")


if __name__ == '__main__':
    unittest.main()
