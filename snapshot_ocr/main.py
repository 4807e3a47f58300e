"""
snapshot-ocr - main entry point

Command line interface:
    snapshot-ocr analyze <image_path> [options]
    snapshot-ocr fingerprint <image_a> <image_b>

Options:
    -o, --output    output file path (stdout when omitted)
    -e, --engine    OCR engine (tesseract / paddleocr)
    --debug         include ranked fragments and enable debug logging
    --no-color      disable coloured output
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .analysis import AnalysisOutcome, ScreenshotAnalyzer
from .coordinator import PipelineConfig
from .engines import (
    EngineType,
    create_engine,
    create_fingerprint_engine,
    get_available_engines,
)
from .errors import NoValueDetected, SnapshotOCRError
from .preprocessor import ImagePreprocessor

SUPPORTED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif', '.webp', '.heic'}


def create_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser"""
    parser = argparse.ArgumentParser(
        prog="snapshot-ocr",
        description="snapshot-ocr - read account balances from banking screenshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  snapshot-ocr analyze balance.png                 # detect the balance
  snapshot-ocr analyze balance.png -e paddleocr    # use PaddleOCR
  snapshot-ocr analyze balance.png -o result.json  # write the result to a file
  snapshot-ocr fingerprint a.png b.png             # visual distance of two screenshots
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="detect the monetary value on a screenshot")
    analyze.add_argument(
        "image_path",
        type=str,
        help="path of the screenshot to analyze"
    )
    analyze.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="output file path (stdout when omitted)"
    )
    analyze.add_argument(
        "-e", "--engine",
        type=str,
        choices=[t.value for t in EngineType],
        default=EngineType.TESSERACT.value,
        help="OCR engine"
    )
    analyze.add_argument(
        "--max-dimension",
        type=int,
        default=None,
        help="longest image side before OCR (default 4096)"
    )
    _add_common_arguments(analyze)

    fingerprint = subparsers.add_parser("fingerprint", help="fingerprint distance of two screenshots")
    fingerprint.add_argument("image_a", type=str, help="first screenshot")
    fingerprint.add_argument("image_b", type=str, help="second screenshot")
    _add_common_arguments(fingerprint)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--debug",
        action="store_true",
        help="include debug information and log at DEBUG level"
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="disable coloured output"
    )


def print_colored(text: str, color: str, no_color: bool = False) -> None:
    """Coloured output"""
    if no_color:
        print(text)
        return

    colors = {
        "green": "\033[92m",
        "yellow": "\033[93m",
        "red": "\033[91m",
        "blue": "\033[94m",
        "reset": "\033[0m",
    }

    print(f"{colors.get(color, '')}{text}{colors['reset']}")


def format_result_summary(outcome: AnalysisOutcome) -> str:
    """Format a short summary of a detection"""
    candidate = outcome.candidate
    lines = [
        f"\n{'='*50}",
        "  Value detected",
        f"{'='*50}",
        f"  Value:      {candidate.value:,.2f}",
        f"  Source:     {candidate.text}",
        f"  Confidence: {candidate.confidence:.1%}",
        f"  Score:      {candidate.score:.3f}",
        f"  Engine:     {outcome.engine_name}",
        "",
    ]
    return "\n".join(lines)


def check_image_path(image_path: str, no_color: bool) -> bool:
    """Existence and extension check, reports problems"""
    path = Path(image_path)
    if not path.exists():
        print_colored(f"Error: file not found: {image_path}", "red", no_color)
        return False

    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        print_colored(
            f"Error: unsupported image format: {path.suffix}\n"
            f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
            "red", no_color
        )
        return False

    return True


def run_analyze(args: argparse.Namespace) -> int:
    if not check_image_path(args.image_path, args.no_color):
        return 1

    config = PipelineConfig(engine_type=EngineType.from_string(args.engine))
    if args.max_dimension:
        config.preprocess.max_dimension = args.max_dimension

    if config.engine_type not in get_available_engines():
        print_colored(f"{config.engine_type.display_name} is not installed, using Tesseract",
                      "yellow", args.no_color)
        config.engine_type = EngineType.TESSERACT

    if config.engine_type == EngineType.PADDLEOCR:
        engine = create_engine(config.engine_type, config=config.paddle)
    else:
        engine = create_engine(config.engine_type, config=config.tesseract)

    analyzer = ScreenshotAnalyzer(engine, preprocessor=ImagePreprocessor(config.preprocess))

    print_colored(f"Processing: {args.image_path}", "blue", args.no_color)

    try:
        outcome = analyzer.analyze(Path(args.image_path).read_bytes())
    except NoValueDetected as e:
        print_colored(f"✗ {e}", "yellow", args.no_color)
        return 2
    except SnapshotOCRError as e:
        print_colored(f"Error: {e}", "red", args.no_color)
        return 1

    output_data = outcome.to_dict(debug=args.debug)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output_data, f, ensure_ascii=False, indent=2)
        print_colored(f"Written: {args.output}", "green", args.no_color)
        print(format_result_summary(outcome))
    else:
        print(format_result_summary(outcome))
        print("\n--- JSON ---")
        print(json.dumps(output_data, ensure_ascii=False, indent=2))

    return 0


def run_fingerprint(args: argparse.Namespace) -> int:
    for image_path in (args.image_a, args.image_b):
        if not check_image_path(image_path, args.no_color):
            return 1

    preprocessor = ImagePreprocessor()
    engine = create_fingerprint_engine()

    try:
        prints = [
            engine.generate(preprocessor.process_file(p).image)
            for p in (args.image_a, args.image_b)
        ]
        distance = engine.compare(prints[0].descriptor, prints[0].revision,
                                  prints[1].descriptor, prints[1].revision)
    except SnapshotOCRError as e:
        print_colored(f"Error: {e}", "red", args.no_color)
        return 1

    print(json.dumps({
        "distance": round(distance, 6),
        "revision": engine.revision,
    }, indent=2))
    return 0


def main() -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args()

    if args.debug:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(levelname)s %(name)s: %(message)s")

    if args.command == "analyze":
        return run_analyze(args)
    return run_fingerprint(args)


if __name__ == "__main__":
    sys.exit(main())
