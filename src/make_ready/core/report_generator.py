import logging
from .owner_matcher import OwnerMatcher
from .spida_extractor import SpidaExtractor
from .katapult_extractor import KatapultExtractor
from .pole_correlator import PoleCorrelator, DEFAULT_GEO_THRESHOLD_M
from .attachment_analyzer import AttachmentAnalyzer
from .report_assembler import ReportAssembler
from .document_loader import DocumentLoader


class ReportResult:
    """Everything one report run produces"""

    def __init__(self, rows, summary, correlated, analyses, layout, row_values, match_table):
        self.rows = rows
        self.summary = summary
        self.correlated = correlated
        self.analyses = analyses
        self.layout = layout
        self.row_values = row_values
        self.match_table = match_table


class ReportGenerator:
    """Runs correlation, analysis and row assembly for a SPIDA + Katapult pair"""

    def __init__(self, config):
        self.config = config or {}
        self.attacher_name = self.config.get("attacher_name", "Charter/Spectrum")
        self.owner_matcher = OwnerMatcher(self.config.get("attacher_aliases"))
        self.utility_name = self.config.get("utility_name", "CPS")
        self.utility_display_name = self.config.get("utility_display_name", "CPS Energy")
        self.pole_number_prefixes = self.config.get("pole_number_prefixes", [])
        self.correlator = PoleCorrelator(
            self.config.get("correlation", {}).get("geo_threshold_m", DEFAULT_GEO_THRESHOLD_M))
        self.assembler = ReportAssembler(self.config.get("column_mappings"))

    def generate(self, spida_data, katapult_data, progress_callback=None):
        """
        Build the make-ready report from two parsed documents

        Args:
            spida_data (dict): Parsed SPIDAcalc export
            katapult_data (dict): Parsed Katapult export
            progress_callback (callable, optional): Called with (percent, message)

        Returns:
            ReportResult
        """
        DocumentLoader.validate_spida(spida_data)
        DocumentLoader.validate_katapult(katapult_data)

        if progress_callback:
            progress_callback(10, "Reading pole data...")

        spida = SpidaExtractor(spida_data, self.owner_matcher, self.utility_name, self.pole_number_prefixes)
        katapult = KatapultExtractor(katapult_data, self.owner_matcher, self.utility_name, self.pole_number_prefixes,
                                     self.config.get("katapult_pole_node_types"))

        if progress_callback:
            progress_callback(30, "Correlating poles...")

        correlated = self.correlator.correlate(spida.list_pole_identifiers(), katapult.list_pole_identifiers())

        if progress_callback:
            progress_callback(60, "Analyzing attachments...")

        analyzer = AttachmentAnalyzer(
            spida, katapult, self.owner_matcher,
            utility_name=self.utility_name,
            utility_display_name=self.utility_display_name,
            relocate_tolerance_ft=self.config.get("analysis", {}).get("relocate_tolerance_ft", 0.1),
        )
        analyses = []
        for pole in correlated:
            try:
                analyses.append(analyzer.analyze(pole))
            except Exception as e:
                logging.error(f"Error analyzing pole {pole.spida_id or pole.katapult_id}: {e}")
                raise

        if progress_callback:
            progress_callback(85, "Assembling report rows...")

        rows = self.assembler.build_rows(analyses)
        summary = self.assembler.build_summary(correlated, rows)
        logging.info(f"Report summary for {self.attacher_name}: {summary.to_dict()}")

        return ReportResult(
            rows=rows,
            summary=summary,
            correlated=correlated,
            analyses=analyses,
            layout=self.assembler.column_layout(),
            row_values=self.assembler.row_values(rows),
            match_table=PoleCorrelator.match_table(correlated),
        )

    def to_dataframe(self, result):
        """Report rows as a DataFrame with one column per report column"""
        return self.assembler.to_dataframe(result.rows)
