"""
RIPS Generator CLI

Command-line interface for generating and validating RIPS documents from the
source EMR database, either from a stored mapping preset or from an explicit
patient/encounter selection.

Usage:
    python generate_rips.py preset 3 --start 2025-01-01 --end 2025-01-31
    python generate_rips.py selection --patient 12:301,302:01 --patient 15:410
    python generate_rips.py selection --selections selections.json

Author: Shubham Singh
Date: December 2025
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

from loguru import logger

from rips_generation.core.config import RipsSettings
from rips_generation.core.exceptions import RipsGenerationError
from rips_generation.core.logging import configure_logging
from rips_generation.core.models import GenerationResult, Selection
from rips_generation.pipeline import RipsPipeline


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser.

    Step 1: Global options (env file, output dir, log level)
    Step 2: "preset" subcommand
    Step 3: "selection" subcommand
    """
    # Step 1: Global options
    parser = argparse.ArgumentParser(
        description="Generate and validate RIPS documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Interpret preset 3 for January 2025:
    python generate_rips.py preset 3 --start 2025-01-01 --end 2025-01-31

  Two patients, the first with two encounters and user type 01:
    python generate_rips.py selection --patient 12:301,302:01 --patient 15:410

  Selections from a JSON file ([{"patientId": 12, "encounterIds": [301]}]):
    python generate_rips.py selection --selections selections.json

Requirements:
  - RIPS_SOURCE_DATABASE_URL set in the environment or in a .env file
        """,
    )
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for the generated JSON (default: RIPS_OUTPUT_DIRECTORY)",
    )
    parser.add_argument(
        "--log-level", type=str, default=None, help="Log level (default: RIPS_LOG_LEVEL)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Step 2: preset
    preset_parser = subparsers.add_parser("preset", help="Interpret a stored mapping preset")
    preset_parser.add_argument("preset_id", type=int, help="Id of the stored preset")
    preset_parser.add_argument("--start", type=str, default=None, help="Start date (YYYY-MM-DD)")
    preset_parser.add_argument("--end", type=str, default=None, help="End date (YYYY-MM-DD)")

    # Step 3: selection
    selection_parser = subparsers.add_parser(
        "selection", help="Generate from explicit patient/encounter selections"
    )
    selection_parser.add_argument(
        "--selections", type=str, default=None, help="JSON file with a list of selections"
    )
    selection_parser.add_argument(
        "--patient",
        action="append",
        default=[],
        metavar="PID:ENC1,ENC2[:USER_TYPE]",
        help="One selection; repeat for more patients",
    )
    return parser


def parse_patient_argument(value: str) -> Selection:
    """
    Parse "pid:enc1,enc2[:user_type]".

    Raises:
        ValueError: If the value is not in that form
    """
    parts = value.split(":")
    if len(parts) not in (2, 3) or not parts[0].strip() or not parts[1].strip():
        raise ValueError(f"Invalid --patient value: {value!r} (expected PID:ENC1,ENC2[:USER_TYPE])")
    encounter_ids = tuple(int(e) for e in parts[1].split(",") if e.strip())
    user_type = parts[2].strip() if len(parts) == 3 else ""
    return Selection(patient_id=int(parts[0]), encounter_ids=encounter_ids, user_type=user_type)


def load_selections(args: argparse.Namespace) -> List[Selection]:
    """Selections from --selections and every --patient, in that order."""
    selections: List[Selection] = []
    if args.selections:
        with open(args.selections, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{args.selections} must contain a JSON list of selections")
        selections.extend(Selection.from_dict(item) for item in data)
    selections.extend(parse_patient_argument(p) for p in args.patient)
    if not selections:
        raise ValueError("Provide --selections or at least one --patient")
    return selections


def print_summary(result: GenerationResult, output_path: str) -> None:
    print()
    print("=" * 80)
    print("GENERATION COMPLETE")
    print("=" * 80)
    print(f"File:        {output_path}")
    print(f"Consecutivo: {result.consecutivo}")
    print(f"Users:       {result.user_count}")
    print(f"Errors:      {result.error_count}")
    print(f"Warnings:    {result.warning_count}")

    if result.findings:
        print("\nFindings:")
        for finding in result.findings:
            print(
                f"  [{finding.severity.value.upper():<7}] {finding.scope} | "
                f"{finding.field}: {finding.message}"
            )
    print()


def main() -> None:
    """
    Run the RIPS generator CLI.

    Step 1: Parse arguments and load settings
    Step 2: Configure logging
    Step 3: Build the pipeline and generate
    Step 4: Save the document and print findings
    """
    # Step 1: Parse arguments and load settings
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        settings = RipsSettings.from_environment(env_file=args.env_file, validate_on_load=True)
        overrides = {}
        if args.output_dir:
            overrides["output_directory"] = Path(args.output_dir)
        if args.log_level:
            overrides["log_level"] = args.log_level.upper()
        if overrides:
            settings = settings.model_copy(update=overrides)

        # Step 2: Configure logging
        configure_logging(settings.log_level, settings.log_file)
        logger.info(f"Loaded settings | {settings.to_dict()}")

        # Step 3: Generate
        pipeline = RipsPipeline(settings)
        if args.command == "preset":
            result = pipeline.generate_from_preset(args.preset_id, args.start, args.end)
        else:
            result = pipeline.generate_from_selections(load_selections(args))

        # Step 4: Save and report
        output_path = pipeline.save_result(result)
        print_summary(result, output_path)

    except ValueError as error:
        logger.error(f"Invalid argument: {error}")
        sys.exit(1)

    except RipsGenerationError as error:
        logger.error(f"Generation failed: {error}")
        sys.exit(1)

    except Exception as error:
        logger.error(f"Unexpected error: {error}")
        logger.exception("Full traceback:")
        sys.exit(1)


if __name__ == "__main__":
    main()
