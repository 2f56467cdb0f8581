import sys
import logging
import argparse
from pathlib import Path
from .core.utils import Utils
from .core.config_manager import ConfigManager
from .core.document_loader import DocumentLoader, DocumentStructureError
from .core.report_generator import ReportGenerator
from .core.output_generator import OutputGenerator


def setup_global_exception_handler():
    """Setup global exception handler to log uncaught exceptions"""
    def global_exception_handler(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        if issubclass(exc_type, RecursionError):
            logging.error("Recursion error detected. Application will exit.")
        else:
            logging.error(f"An unexpected error occurred: {exc_value}")

    sys.excepthook = global_exception_handler


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Correlate a SPIDAcalc export with a Katapult export and write a make-ready report.")
    parser.add_argument("spida", help="SPIDAcalc JSON export")
    parser.add_argument("katapult", help="Katapult JSON export")
    parser.add_argument("-o", "--output", help="Excel file to write (default: <spida name>_make_ready.xlsx)")
    parser.add_argument("-c", "--config", default="Default", help="Configuration name (default: Default)")
    parser.add_argument("--config-dir", help="Directory holding the configuration files")
    parser.add_argument("--csv", help="Also write the report rows to this CSV file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def default_output_path(spida_path):
    spida_path = Path(spida_path)
    return spida_path.with_name(f"{spida_path.stem}_make_ready.xlsx")


def progress(percent, message):
    logging.info(f"[{percent:3d}%] {message}")


def main(argv=None):
    """Command line entry point; returns the process exit code"""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[logging.StreamHandler()]
    )
    setup_global_exception_handler()

    config_dir = Path(args.config_dir) if args.config_dir else Utils.get_base_directory()
    config = ConfigManager(config_dir).load_config(args.config)
    if args.debug or config.get("processing_options", {}).get("debug_mode", False):
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Debug logging enabled")

    try:
        spida_data = DocumentLoader.load_spida(args.spida)
        katapult_data = DocumentLoader.load_katapult(args.katapult)
    except (FileNotFoundError, DocumentStructureError) as e:
        logging.error(str(e))
        return 2

    generator = ReportGenerator(config)
    result = generator.generate(spida_data, katapult_data, progress_callback=progress)

    output_file = args.output or default_output_path(args.spida)
    OutputGenerator(config).write_output(result, output_file)
    progress(100, f"Report written to {output_file}")

    if args.csv:
        generator.to_dataframe(result).to_csv(args.csv, index=False)
        logging.info(f"Report rows written to {args.csv}")

    summary = result.summary
    logging.info(f"{summary.total_poles} poles: {summary.matched_poles} matched, "
                 f"{summary.source_a_only_poles} SPIDA only, {summary.source_b_only_poles} Katapult only; "
                 f"{summary.total_rows} report rows")
    return 0


if __name__ == "__main__":
    sys.exit(main())
