"""Main CLI entry point for extdiff."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from .config import (
    DEFAULT_MAX_FILES,
    DEFAULT_MAX_LINE_CHARACTERS,
    DEFAULT_MAX_LINES,
    WHITESPACE_FLAGS,
    DiffBackend,
    DiffLimits,
    DiffOptions,
)
from .errors import DiffDecodeError, DiffToolFailedError, ExtDiffError
from .logging_utils import configure_logging
from .serialize import DiffSerializer
from .service import DiffService
from .settings import Settings


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="extdiff",
        description="Run an external diff tool through git and emit the parsed diff",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  extdiff --repo /path/to/repo --after def456
  extdiff --repo /path/to/repo --before abc123 --after def456 --backend special
  extdiff --repo /path/to/repo --after def456 --skip-to src/app.py \\
          --max-files 20 --json output.json src/
        """,
    )

    # Required arguments
    parser.add_argument(
        "--repo",
        required=True,
        help="Path to a local git repository",
    )
    parser.add_argument(
        "--after",
        required=True,
        help="Commit to show (newer side)",
    )

    # Optional arguments
    parser.add_argument(
        "--before",
        default="",
        help="Base commit (default: first parent, or the empty tree for a root commit)",
    )
    parser.add_argument(
        "--backend",
        choices=[backend.value for backend in DiffBackend],
        help="External diff tool (default: EXTDIFF_BACKEND or difft)",
    )
    parser.add_argument(
        "--skip-to",
        default="",
        help="Start the diff at this file",
    )
    parser.add_argument(
        "--whitespace",
        default="show-all",
        help=f"Whitespace behavior: {', '.join(sorted(WHITESPACE_FLAGS))} or a raw flag",
    )
    parser.add_argument(
        "--max-lines",
        type=int,
        default=DEFAULT_MAX_LINES,
        help="Maximum lines per file, -1 for unlimited (default: %(default)s)",
    )
    parser.add_argument(
        "--max-line-chars",
        type=int,
        default=DEFAULT_MAX_LINE_CHARACTERS,
        help="Maximum characters per line, -1 for unlimited (default: %(default)s)",
    )
    parser.add_argument(
        "--max-files",
        type=int,
        default=DEFAULT_MAX_FILES,
        help="Maximum number of files, -1 for unlimited (default: %(default)s)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when the diff tool exits with an error instead of returning a partial diff",
    )
    parser.add_argument(
        "--json",
        help="Output JSON to file instead of stdout",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Limit the diff to these paths",
    )

    return parser


def create_options(args: argparse.Namespace) -> DiffOptions:
    """Create diff options from command line arguments."""
    return DiffOptions(
        after_commit_id=args.after,
        before_commit_id=args.before,
        skip_to=args.skip_to,
        whitespace_behavior=args.whitespace,
        limits=DiffLimits(
            max_lines=args.max_lines,
            max_line_characters=args.max_line_chars,
            max_files=args.max_files,
        ),
        raise_on_tool_error=args.strict,
    )


def output_result(result: dict, output_path: Optional[str]) -> None:
    """Output result to stdout or file."""
    json_str = DiffSerializer().to_json_string(result)

    if output_path:
        Path(output_path).write_text(json_str, encoding="utf-8")
    else:
        print(json_str)


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    serializer = DiffSerializer()

    try:
        options = create_options(args)
        settings = Settings.from_env()
        backend = DiffBackend(args.backend) if args.backend else None

        diff = DiffService(settings).get_diff(args.repo, options, args.files, backend)

        payload = serializer.serialize_diff(diff, options.to_provenance_dict())
        output_result(serializer.create_success_envelope(payload), args.json)
        return 0

    except (DiffDecodeError, DiffToolFailedError) as e:
        # Keep whatever was parsed next to the error
        details = dict(e.details)
        details["partial"] = serializer.serialize_diff(e.diff)
        result = serializer.create_error_envelope(e.code, e.message, details)
        output_result(result, args.json)
        return 1

    except ExtDiffError as e:
        result = serializer.create_error_envelope(e.code, e.message, e.details)
        output_result(result, args.json)
        return 1

    except Exception as e:
        # Handle unexpected errors
        result = serializer.create_error_envelope(
            "INTERNAL_ERROR",
            f"Internal error: {str(e)}",
            {"type": type(e).__name__}
        )
        output_result(result, args.json)
        return 1


if __name__ == "__main__":
    sys.exit(main())
