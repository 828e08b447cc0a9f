"""
PaperLens - Command-Line Entry Point

Interprets a paper with the configured language model and streams the
report to stdout as it is generated.

Examples:
  # Interpret a paper (reuses a saved interpretation when the file is unchanged)
  paperlens interpret attention.pdf

  # Ignore the saved interpretation and run again
  paperlens interpret attention.pdf --refresh

  # Use another settings file
  paperlens interpret attention.pdf --config ./settings.yaml

  # Check endpoint, model and API key
  paperlens test-connection

  # Debug mode (verbose logging)
  DEBUG=true paperlens interpret attention.pdf
"""

import argparse
import logging
import sys

from paperlens.config import SETTINGS_FILE, load_pipeline_config
from paperlens.errors import InterpretationCancelled, InterpretationError
from paperlens.interpretation import InterpretationOrchestrator
from paperlens.logging_config import info, set_console_level


class _StreamPrinter:
    """Prints only the new suffix of each growing content snapshot."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.printed = 0

    def __call__(self, text: str) -> None:
        self.stream.write(text[self.printed:])
        self.stream.flush()
        self.printed = len(text)


def _print_progress(phase: str, percent: int, detail: str) -> None:
    print(f"[{percent:3d}%] {phase}: {detail}" if detail else f"[{percent:3d}%] {phase}",
          file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paperlens",
        description="PaperLens - whole-paper interpretation with a language model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument(
        '--config',
        default=None,
        help=f'Settings file (default: {SETTINGS_FILE})'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show pipeline log messages on the console'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    interpret_parser = subparsers.add_parser('interpret', help='Interpret a PDF or TXT paper')
    interpret_parser.add_argument('file', help='Paper to interpret (PDF or TXT)')
    interpret_parser.add_argument(
        '--refresh',
        action='store_true',
        help='Ignore a saved interpretation and run the model again'
    )

    subparsers.add_parser('test-connection', help='Check the language model settings')

    return parser


def main(argv=None) -> int:
    """Command-line interface for PaperLens."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        config = load_pipeline_config(args.config)
        orchestrator = InterpretationOrchestrator.from_config(config)

        if args.command == 'test-connection':
            success, message = orchestrator.test_connection()
            print(message)
            return 0 if success else 1

        info(f"Interpreting {args.file}")
        printer = _StreamPrinter()
        result = orchestrator.run(
            args.file,
            progress_sink=_print_progress,
            content_sink=printer,
            force_refresh=args.refresh,
        )
        print()
        if result.from_cache:
            print(f"(saved interpretation from {result.timestamp.astimezone():%Y-%m-%d %H:%M})",
                  file=sys.stderr)
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except InterpretationCancelled as e:
        print(f"\n{e}", file=sys.stderr)
        return 130
    except InterpretationError as e:
        print(f"\n{e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
