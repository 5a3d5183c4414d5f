#!/usr/bin/env python3
"""
CLI for the Keyword Detector: OCR an image and highlight keyword matches.
"""

import argparse
import json
import logging
import os
import sys

from keyword_detector.common.image_io import load_image
from keyword_detector.common.logger import setup_logging, VERBOSE_LEVEL_NUM
from keyword_detector.config import Config, DEFAULT_CONFIG_PATH
from keyword_detector.exceptions import KeywordDetectorError
from keyword_detector.search.detector import KeywordDetector
from keyword_detector.search.keyword_matcher import MatchMode

log_handle = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyword-detector",
        description="Run OCR over an image and highlight words matching a keyword list.")
    parser.add_argument("image", help="Path to the image file")
    parser.add_argument("keywords", help="Comma-separated keywords, e.g. 'hello, world'")
    parser.add_argument("--match-mode", choices=[m.value for m in MatchMode], default=None,
                        help="Keyword matching mode (default: from config)")
    parser.add_argument("--output", "-o", metavar="PNG",
                        help="Write the highlighted image to this path")
    parser.add_argument("--display-width", type=int, default=None,
                        help="Rescale boxes to this displayed width (needs --display-height)")
    parser.add_argument("--display-height", type=int, default=None,
                        help="Rescale boxes to this displayed height (needs --display-width)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH,
                        help=f"Path to the YAML config (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at VERBOSE level")
    return parser


def _resolve_config_path(path: str):
    """
    Paths given on the command line are relative to the working directory.
    The default path is left to Config, which looks under the project root
    and falls back to built-in settings. Returns None for a missing file.
    """
    if os.path.exists(path):
        return os.path.abspath(path)
    if path == DEFAULT_CONFIG_PATH:
        return path
    return None


def main(argv=None, detector: KeywordDetector = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(console_level=VERBOSE_LEVEL_NUM if args.verbose else logging.WARNING,
                  console_only=True)

    if (args.display_width is None) != (args.display_height is None):
        print("Error: --display-width and --display-height must be given together", file=sys.stderr)
        return 1
    displayed_size = (args.display_width, args.display_height) if args.display_width is not None else None

    if detector is None:
        config_path = _resolve_config_path(args.config)
        if config_path is None:
            print(f"Error: config file not found: {args.config}", file=sys.stderr)
            return 1
        try:
            detector = KeywordDetector.from_config(Config(config_path))
        except Exception as e:
            log_handle.error(f"Failed to initialise detector: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1

    try:
        image = load_image(args.image)
        result = detector.detect(image, args.keywords, displayed_size=displayed_size,
                                 match_mode=args.match_mode)
        if args.output:
            detector.highlight(image, result).save(args.output, format="PNG")
    except (KeywordDetectorError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        found = ", ".join(result.matched_keywords) if result.matched_keywords else "none"
        print(f"Found keywords: {found}")
        print(f"Detected {result.instances} instances")
        if args.output:
            print(f"Highlighted image written to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
