"""
Command-line interface for eraser.

Redacts single images or directories of images with argparse-driven options.
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

from . import __version__
from .config import BlurOptions, EraserConfig, load_config
from .imaging import IMAGE_EXTENSIONS, load_image, save_image
from .pipeline import RedactionPipeline, create_pipeline
from .logger import setup_root_logger, get_logger


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="eraser",
        description="Local blur redaction of faces, bodies, license plates and private text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Blur faces in one photo
  eraser --input photo.jpg --output out/

  # Blur faces, bodies and license plates with a stronger blur
  eraser --input street.png --body --plates --strength 35

  # Blur emails and phone numbers only, for a whole directory
  eraser --input scans/ --no-faces --text --recursive

  # Custom configuration
  eraser --input photo.jpg --config eraser.json
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input image or directory path"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output directory path (default: from config, ./output)"
    )

    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )

    parser.add_argument(
        "--extensions",
        type=str,
        nargs="+",
        default=IMAGE_EXTENSIONS,
        help="File extensions to process (default: common image formats)"
    )

    # Stages
    parser.add_argument(
        "--faces",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Blur faces (default: on)"
    )

    parser.add_argument(
        "--body",
        action="store_true",
        help="Blur whole bodies using person segmentation"
    )

    parser.add_argument(
        "--plates",
        action="store_true",
        help="Blur license-plate-like text"
    )

    parser.add_argument(
        "--text",
        action="store_true",
        help="Blur emails and phone numbers"
    )

    parser.add_argument(
        "--strength", "-s",
        type=int,
        default=20,
        help="Blur radius in pixels, 5-50 recommended (default: 20)"
    )

    # Configuration
    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to JSON configuration file"
    )

    parser.add_argument(
        "--iou-threshold",
        type=float,
        help="Overlap above which face detections are merged (overrides config)"
    )

    parser.add_argument(
        "--ocr-engine",
        type=str,
        choices=["tesseract", "easyocr"],
        help="Primary OCR engine (overrides config)"
    )

    parser.add_argument(
        "--lang",
        type=str,
        help="OCR language code, e.g. eng (overrides config)"
    )

    # Output options
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Do not write a JSON metadata file next to each output"
    )

    # Logging
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Path to log file (default: console only)"
    )

    # Misc
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be processed without actually processing"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"eraser {__version__}"
    )

    return parser


def apply_overrides(config: EraserConfig, args: argparse.Namespace) -> EraserConfig:
    """Apply command-line overrides on top of a loaded configuration."""
    if args.output:
        config.output_dir = Path(args.output)
    if args.iou_threshold is not None:
        config.redaction = replace(config.redaction, iou_threshold=args.iou_threshold)
    if args.ocr_engine:
        config.ocr.primary_engine = args.ocr_engine
    if args.lang:
        config.ocr.language = args.lang
    if args.log_level:
        config.log_level = args.log_level
    if args.no_metadata:
        config.save_metadata = False
    return config


def options_from_args(args: argparse.Namespace) -> BlurOptions:
    return BlurOptions(
        blur_faces=args.faces,
        blur_body=args.body,
        blur_plates=args.plates,
        blur_text=args.text,
        strength=args.strength
    )


def find_input_files(
    input_path: Union[str, Path],
    extensions: List[str],
    recursive: bool = False
) -> List[Path]:
    """Find input files based on path and extensions."""
    input_path = Path(input_path)
    logger = get_logger(__name__)

    if not input_path.exists():
        raise FileNotFoundError(f"Input path not found: {input_path}")

    allowed = {ext.lower() for ext in extensions}

    if input_path.is_file():
        return [input_path] if input_path.suffix.lower() in allowed else []

    pattern = "**/*" if recursive else "*"
    files = [p for p in input_path.glob(pattern) if p.is_file() and p.suffix.lower() in allowed]
    logger.debug(f"Matched {len(files)} files under {input_path} (recursive={recursive})")
    return sorted(files)


def process_single_file(
    input_path: Path,
    output_dir: Path,
    pipeline: RedactionPipeline,
    options: BlurOptions,
    save_metadata: bool,
    logger
) -> dict:
    """Redact one image file and write the result (and metadata) to output_dir."""
    logger.info(f"Processing: {input_path}")

    processing_info = {
        "input_file": str(input_path),
        "success": False,
        "error": None,
        "processing_time_ms": 0.0,
        "regions": 0,
        "failures": 0
    }

    try:
        image = load_image(input_path)
        result = pipeline.process(image, options)

        output_path = save_image(result.image, output_dir / f"redacted_{input_path.name}")

        if save_metadata:
            metadata = {
                "input_file": str(input_path),
                "output_file": str(output_path),
                **result.to_dict()
            }
            metadata_path = output_dir / f"{input_path.stem}_metadata.json"
            with open(metadata_path, 'w') as f:
                json.dump(metadata, f, indent=2)

        processing_info.update({
            "success": True,
            "processing_time_ms": result.processing_time_ms,
            "regions": result.total_regions,
            "failures": len(result.failures)
        })

        if not result.modified:
            logger.info(f"Nothing redacted in {input_path.name}")

    except Exception as e:
        logger.error(f"Failed to process {input_path}: {e}")
        processing_info["error"] = str(e)

    return processing_info


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
        options = options_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        parser.error(str(e))

    log_file = Path(args.log_file) if args.log_file else None
    setup_root_logger(config.log_level, log_file)
    logger = get_logger(__name__)

    logger.info("eraser CLI started")
    logger.debug(f"Configuration: {json.dumps(config.to_dict())}")
    logger.debug(f"Options: {options}")

    try:
        input_files = find_input_files(args.input, args.extensions, args.recursive)

        if not input_files:
            logger.error("No input files found")
            return 1

        logger.info(f"Found {len(input_files)} files to process")

        if args.dry_run:
            logger.info("DRY RUN - Files that would be processed:")
            for file_path in input_files:
                logger.info(f"  {file_path}")
            return 0

        if not options.any_enabled:
            logger.warning("All stages are disabled; outputs will equal the inputs")

        output_dir = config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Initializing detectors...")
        pipeline = create_pipeline(config, options)

        results = []
        for i, input_file in enumerate(input_files, 1):
            logger.info(f"Processing file {i}/{len(input_files)}: {input_file.name}")
            results.append(process_single_file(
                input_file, output_dir, pipeline, options, config.save_metadata, logger
            ))

        successful = sum(1 for r in results if r["success"])
        failed = len(results) - successful
        total_regions = sum(r["regions"] for r in results if r["success"])
        detector_failures = sum(r["failures"] for r in results if r["success"])
        avg_time = sum(r["processing_time_ms"] for r in results if r["success"]) / max(successful, 1)

        logger.info(f"""
Processing complete!
  Total files: {len(results)}
  Successful: {successful}
  Failed: {failed}
  Redacted regions: {total_regions}
  Detector failures: {detector_failures}
  Average processing time: {avg_time:.2f}ms
  Output directory: {output_dir}
        """)

        if failed > 0:
            logger.warning(f"{failed} files failed to process")
            for result in results:
                if not result["success"]:
                    logger.warning(f"  {result['input_file']}: {result['error']}")

        return 0 if failed == 0 else 1

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
