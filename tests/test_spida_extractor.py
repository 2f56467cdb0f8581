import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from make_ready.core.spida_extractor import SpidaExtractor
from make_ready.models.data_models import AttachmentState, UsageCategory
from sample_documents import basic_job, spida_design, spida_document, spida_location, spida_wire


def riser(owner, **fields):
    equipment = {"id": "eq-1", "owner": {"id": owner}, "attachmentHeight": {"unit": "METRE", "value": 3.0}}
    equipment.update(fields)
    return equipment


class TestSpidaExtractor(unittest.TestCase):

    def setUp(self):
        spida, _ = basic_job()
        self.extractor = SpidaExtractor(spida, pole_number_prefixes=["PL"])
        self.pole = self.extractor.poles[0]

    def _single_pole(self, current=None, proposed=None, **location_args):
        extractor = SpidaExtractor(spida_document(spida_location("PL1", current, proposed, **location_args)))
        return extractor, extractor.poles[0]

    def test_poles_in_lead_order(self):
        self.assertEqual([p.label for p in self.extractor.poles], ["PL410620", "PL999999"])
        self.assertEqual(self.pole.key, "0-0")

    def test_pole_identifiers(self):
        identifiers = self.extractor.list_pole_identifiers()
        self.assertEqual([i.id for i in identifiers], ["PL410620", "PL999999"])
        self.assertEqual(identifiers[0].normalized_id, "410620")
        self.assertAlmostEqual(identifiers[0].latitude, 29.4241)
        self.assertAlmostEqual(identifiers[0].longitude, -98.4936)

    def test_pole_tags_become_aliases(self):
        extractor = SpidaExtractor(spida_document(spida_location("PL1", tags=["T-77", "PL1"])))
        identifiers = extractor.list_pole_identifiers()
        self.assertEqual([i.id for i in identifiers], ["PL1", "T-77"])
        self.assertEqual({i.source_index for i in identifiers}, {"0-0"})

    def test_unlabelled_location_keeps_an_identifier(self):
        location = spida_location("PL1")
        location["label"] = None
        identifiers = SpidaExtractor(spida_document(location)).list_pole_identifiers()
        self.assertEqual(len(identifiers), 1)
        self.assertEqual(identifiers[0].id, "")

    def test_get_design_by_layer_type(self):
        self.assertEqual(self.extractor.get_design(self.pole, AttachmentState.CURRENT)["layerType"], "Measured")
        self.assertEqual(self.extractor.get_design(self.pole, AttachmentState.PROPOSED)["layerType"], "Recommended")

    def test_get_design_without_layer_types(self):
        current = spida_design(None)
        proposed = spida_design(None, stress_ratio=0.5)
        extractor, pole = self._single_pole(current, proposed)
        self.assertIs(extractor.get_design(pole, AttachmentState.CURRENT), pole.location["designs"][0])
        self.assertIs(extractor.get_design(pole, AttachmentState.PROPOSED), pole.location["designs"][1])

    def test_list_attachments_converts_heights(self):
        proposed = self.extractor.list_attachments(self.pole, AttachmentState.PROPOSED)
        charter = [a for a in proposed if a.owner_name == "Charter"][0]
        self.assertAlmostEqual(charter.attachment_height_ft, 22.0, places=3)
        self.assertAlmostEqual(charter.midspan_height_ft, 19.0, places=3)
        self.assertEqual(charter.usage_category, UsageCategory.COMMUNICATION)
        self.assertEqual(charter.description, "Fiber Cable")
        self.assertTrue(charter.proposed)
        self.assertEqual(len(self.extractor.list_attachments(self.pole, AttachmentState.CURRENT)), 2)

    def test_wire_usage_from_catalog(self):
        spida = spida_document(spida_location("PL1"))
        spida["clientData"]["wires"] = [{"size": "1/0 ACSR", "usageGroups": ["NEUTRAL", "PRIMARY"]}]
        extractor = SpidaExtractor(spida)
        self.assertEqual(extractor.get_wire_usage({"clientItem": {"size": "1/0 ACSR"}}), UsageCategory.NEUTRAL)
        self.assertEqual(extractor.get_wire_usage({"clientItem": "unknown"}), UsageCategory.OTHER)

    def test_lowest_neutral(self):
        self.assertAlmostEqual(self.extractor.find_lowest_neutral_height(self.pole, AttachmentState.CURRENT), 30.0,
                               places=3)
        self.assertIsNone(self.extractor.find_lowest_neutral_height(self.extractor.poles[1], AttachmentState.CURRENT))

    def test_owner(self):
        self.assertEqual(self.extractor.get_owner(self.pole), "CPS Energy")
        design = spida_design("Measured")
        design["structure"]["pole"]["owner"] = {"industry": "UTILITY"}
        extractor, pole = self._single_pole(current=design)
        self.assertEqual(extractor.get_owner(pole), "UTILITY Owner")

    def test_structure_description(self):
        self.assertEqual(self.extractor.get_structure_description(self.pole), "40-4 Southern Pine")

    def test_structure_description_unresolved(self):
        design = spida_design("Measured", pole_item="45-2 DF")
        extractor, pole = self._single_pole(current=design, proposed=spida_design("Recommended", pole_item="45-2 DF"))
        self.assertEqual(extractor.get_structure_description(pole), "Unknown")

    def test_structure_description_inline_definition(self):
        inline = {"species": "Douglas Fir", "classOfPole": "2"}
        extractor, pole = self._single_pole(current=spida_design("Measured", pole_item=inline))
        self.assertEqual(extractor.get_structure_description(pole), "2 Douglas Fir")

    def test_riser_requires_attacher_owner(self):
        proposed = spida_design("Recommended", equipments=[riser("Charter", clientItem={"type": "RISER"})])
        extractor, pole = self._single_pole(proposed=proposed)
        self.assertTrue(extractor.check_has_riser(pole))

        proposed = spida_design("Recommended", equipments=[riser("CPS Energy", clientItem={"type": "RISER"})])
        extractor, pole = self._single_pole(proposed=proposed)
        self.assertFalse(extractor.check_has_riser(pole))

        proposed = spida_design("Recommended", equipments=[riser("Spectrum", clientItem={"type": "STREET_LIGHT"})])
        extractor, pole = self._single_pole(proposed=proposed)
        self.assertFalse(extractor.check_has_riser(pole))

        proposed = spida_design("Recommended", equipments=[riser("Charter Communications", type={"name": "RISER"})])
        extractor, pole = self._single_pole(proposed=proposed)
        self.assertTrue(extractor.check_has_riser(pole))

    def test_riser_type_locations(self):
        self.assertTrue(SpidaExtractor.is_riser({"type": {"name": "RISER"}}))
        self.assertTrue(SpidaExtractor.is_riser({"clientItem": {"type": {"name": "riser"}}}))
        self.assertTrue(SpidaExtractor.is_riser({"type": "RISER"}))
        self.assertTrue(SpidaExtractor.is_riser({"clientItem": {"description": "2in PVC Riser"}}))
        self.assertFalse(SpidaExtractor.is_riser({"clientItem": {"type": "STREET_LIGHT"}}))

    def test_riser_in_current_only_is_not_proposed(self):
        current = spida_design("Measured", equipments=[riser("Charter", type="RISER")])
        extractor, pole = self._single_pole(current=current)
        self.assertFalse(extractor.check_has_riser(pole))

    def test_guy(self):
        self.assertFalse(self.extractor.check_has_guy(self.pole))
        guy = {"id": "g1", "owner": {"id": "Charter"}, "attachmentHeight": {"unit": "METRE", "value": 6.0}}
        extractor, pole = self._single_pole(proposed=spida_design("Recommended", guys=[guy]))
        self.assertTrue(extractor.check_has_guy(pole))

    def test_load_percentage(self):
        self.assertEqual(self.extractor.extract_load_percentage(self.pole), "65.0%")
        self.assertEqual(self.extractor.extract_load_percentage(self.extractor.poles[1]), "--")

    def test_load_percentage_from_analysis_results(self):
        design = spida_design("Recommended")
        design["analysis"] = [{"results": [
            {"component": "Pole", "unit": "PERCENT", "actual": 72.31},
        ]}]
        extractor, pole = self._single_pole(proposed=design)
        self.assertEqual(extractor.extract_load_percentage(pole), "72.3%")

    def test_construction_grade(self):
        self.assertEqual(self.extractor.get_construction_grade(self.pole), "Grade C")
        self.assertEqual(self.extractor.get_construction_grade(self.extractor.poles[1]), "Unknown")

    def test_next_pole_label(self):
        self.assertEqual(self.extractor.get_next_pole_label(self.pole), "PL999999")
        self.assertIsNone(self.extractor.get_next_pole_label(self.extractor.poles[1]))

    def test_find_attachments_by_owner(self):
        found = self.extractor.find_attachments_by_owner(
            self.pole, AttachmentState.PROPOSED, self.extractor.owner_matcher)
        self.assertEqual([a.id for a in found], ["w-charter"])

    def test_wire_description(self):
        self.assertEqual(SpidaExtractor.get_wire_description(spida_wire("w", "AT&T", 10, client_item="Coax 0.5")),
                         "Coaxial Cable")
        self.assertEqual(SpidaExtractor.get_wire_description({"clientItem": "x"}), "Cable")


if __name__ == '__main__':
    unittest.main()
