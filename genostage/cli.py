"""Command-line interface for genostage."""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .annotation import AnnotationPipeline, annotate_directory
from .config import load_config
from .constants import VALUE_DELIMITER
from .importer import FileImporter, ImportDataRecord
from .pipeline_core.error_handling import PipelineError, validate_source_file
from .staging import CancerStudyMetadata, DatatypeMetadata, StagingWriter
from .tools import ToolSettings
from .utils import check_external_tools
from .validators import validate_directory, validate_tool_settings
from .version import __version__

logger = logging.getLogger("genostage")

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the genostage CLI."""
    parser = argparse.ArgumentParser(
        description="genostage: Resolve, normalize and annotate genomic data files for staging."
    )

    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"genostage {__version__}",
        help="Show the current version and exit",
    )
    general_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )
    general_group.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )
    general_group.add_argument(
        "-c",
        "--config",
        help="Path to configuration file",
        default=None,
    )

    tool_group = parser.add_argument_group("Annotation Tools")
    tool_group.add_argument("--liftover-binary", help="Location of the liftover binary")
    tool_group.add_argument("--liftover-chain", help="Location of the liftover chain file")
    tool_group.add_argument(
        "--temp-dir", help="Directory for temporary pipeline artifacts (default: system temp)"
    )
    tool_group.add_argument(
        "--check-tools",
        action="store_true",
        help="Verify that the annotation tools are on PATH before running",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    stage_parser = subparsers.add_parser(
        "stage", help="Resolve a source file and write its staging file"
    )
    stage_parser.add_argument("source", help="Source file path or file:// URL")
    stage_parser.add_argument(
        "--data-file",
        required=True,
        help="Logical data filename; selects the entry inside a tar.gz archive",
    )
    stage_parser.add_argument("--staging-dir", required=True, help="Root of the staging area")
    stage_parser.add_argument(
        "--staging-file", required=True, help="Staging filename inside the study directory"
    )
    stage_parser.add_argument("--study-id", required=True, help="Cancer study identifier")
    stage_parser.add_argument("--datatype", default="data", help="Datatype name, used in logs")
    stage_parser.add_argument(
        "--tumor-type", default=None, help="Tumor type label substituted into --data-file"
    )
    stage_parser.add_argument(
        "--mutation",
        action="store_true",
        help="Treat the source as a mutation table and run it through the annotation pipeline",
    )
    stage_parser.add_argument(
        "--correlate",
        default=None,
        help="Correlate table whose probe column restricts the rows kept",
    )

    annotate_parser = subparsers.add_parser(
        "annotate", help="Run one mutation file through liftover, annotation and scoring"
    )
    annotate_parser.add_argument("input", help="Input mutation file path or file:// URL")
    annotate_parser.add_argument("output", help="Final annotated output path or file:// URL")

    annotate_dir_parser = subparsers.add_parser(
        "annotate-dir", help="Annotate every MAF file below a directory in place"
    )
    annotate_dir_parser.add_argument("directory", help="Directory searched recursively")

    return parser


def parse_args(args_list: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args_list : list of str, optional
        Arguments to parse instead of sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments
    """
    parser = create_parser()
    return parser.parse_args(args_list)


def _configure_logging(args: argparse.Namespace) -> None:
    logging.getLogger("genostage").setLevel(LOG_LEVEL_MAP[args.log_level])

    if args.log_file:
        log_file_path = Path(args.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(args.log_file)
        fh.setLevel(LOG_LEVEL_MAP[args.log_level])
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {args.log_file}")


def _run_stage(
    args: argparse.Namespace, cfg: Dict[str, Any], pipeline: AnnotationPipeline
) -> int:
    source = validate_source_file(args.source, "stage")
    correlate_path = validate_source_file(args.correlate, "stage") if args.correlate else None

    delimiter = cfg.get("value_delimiter", VALUE_DELIMITER)
    writer = StagingWriter(args.staging_dir, delimiter=delimiter, temp_dir=pipeline.temp_dir)
    importer = FileImporter(cfg, writer, pipeline)

    study = CancerStudyMetadata(
        study_id=args.study_id, study_path=args.study_id, tumor_type=args.tumor_type or ""
    )
    datatype = DatatypeMetadata(datatype=args.datatype, staging_filename=args.staging_file)

    correlate = None
    if correlate_path:
        correlate = ImportDataRecord(
            canonical_path_to_data=str(correlate_path),
            data_filename=correlate_path.name,
            study=study,
            datatype=datatype,
        )

    record = ImportDataRecord(
        canonical_path_to_data=str(source),
        data_filename=args.data_file,
        study=study,
        datatype=datatype,
        tumor_type_label=args.tumor_type,
        is_mutation=args.mutation,
        correlate=correlate,
    )

    if not importer.stage_record(record):
        logger.error(f"No usable data in {source}")
        return 1
    logger.info(f"Staged {writer.staging_path(study, datatype)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the genostage CLI.

    Steps:
        1. Parse arguments.
        2. Configure logging and load config.
        3. Build the tool settings and the annotation pipeline.
        4. Validate inputs and run the selected command.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    args = parse_args(argv)
    _configure_logging(args)

    start_time = datetime.datetime.now()
    logger.info(f"Run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    cfg = load_config(args.config)
    logger.debug(f"Configuration loaded: {cfg}")

    settings = ToolSettings.from_config(
        cfg, liftover_binary=args.liftover_binary, liftover_chain=args.liftover_chain
    )
    pipeline = AnnotationPipeline(
        settings,
        temp_dir=args.temp_dir or cfg.get("temp_dir"),
        delimiter=cfg.get("value_delimiter", VALUE_DELIMITER),
    )

    if args.command in ("annotate", "annotate-dir") or getattr(args, "mutation", False):
        validate_tool_settings(settings, logger)
        if args.check_tools and not check_external_tools(settings.executables()):
            return 1

    try:
        if args.command == "stage":
            status = _run_stage(args, cfg, pipeline)
        elif args.command == "annotate":
            input_path = validate_source_file(args.input, "annotate")
            pipeline.run(input_path, args.output)
            status = 0
        else:
            validate_directory(args.directory, logger)
            summary = annotate_directory(args.directory, pipeline)
            status = 1 if summary.failed else 0
    except (PipelineError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        status = 1

    end_time = datetime.datetime.now()
    logger.info(f"Run ended at {end_time.isoformat()} (elapsed {end_time - start_time})")
    return status


if __name__ == "__main__":
    sys.exit(main())
