"""Command-line interface for MTG Commander Analyzer."""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import __version__
from .brackets import BracketNotFoundError
from .config import AnalyzerConfig, ConfigManager, apply_env_overrides
from .context import ServiceContext, create_default_context
from .deck_builder import CommanderNotFoundError
from .edhrec_service import EDHRECAPIError
from .models import AnalyzeDeckInput, BuildDeckInput
from .scryfall_service import CardDatabaseError, ScryfallAPIError, download_oracle_cards
from .templates import ReferenceDataError
from .tools import InputValidationError, run_analyze_deck, run_build_deck


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='mtg-commander-analyzer',
        description='Analyze and build MTG Commander decks against templates and bracket rules',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s download-cards
  %(prog)s analyze my_deck.txt --template bracket3
  cat my_deck.txt | %(prog)s analyze -
  %(prog)s build "Atraxa, Praetors' Voice" --seed "Sol Ring" --autofill
  %(prog)s serve
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging with detailed progress information'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress all log output except errors'
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        help='Configuration directory (default: ~/.mtg_commander_analyzer)'
    )

    parser.add_argument(
        '--oracle-cards',
        type=str,
        help='Path to the Scryfall oracle-cards.json file'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    analyze_parser = subparsers.add_parser('analyze', help='Analyze a decklist file')
    analyze_parser.add_argument(
        'deck_file',
        type=str,
        help='Decklist file with one "<quantity> <name>" entry per line, or - for stdin'
    )
    _add_reference_arguments(analyze_parser)
    _add_output_argument(analyze_parser)

    build_parser = subparsers.add_parser('build', help='Build a skeleton deck from a commander')
    build_parser.add_argument('commander', type=str, help='Name of the commander card')
    _add_reference_arguments(build_parser)
    build_parser.add_argument(
        '--seed', '-s',
        action='append',
        default=[],
        metavar='CARD',
        help='Seed card to include (repeatable)'
    )
    build_parser.add_argument(
        '--edhrec',
        action='store_true',
        help='Fetch EDHREC suggestions for the color identity'
    )
    build_parser.add_argument(
        '--autofill',
        action='store_true',
        help='Fill ramp, draw, removal and wipe deficits from EDHREC suggestions'
    )
    build_parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable EDHREC response caching'
    )
    _add_output_argument(build_parser)

    download_parser = subparsers.add_parser('download-cards', help='Download the Scryfall oracle card database')
    download_parser.add_argument(
        '--destination', '-d',
        type=str,
        help='Where to save oracle-cards.json (default: the configured card database path)'
    )

    subparsers.add_parser('serve', help='Run the MCP server on stdio')

    return parser.parse_args(argv)


def _add_reference_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--template', '-t', type=str, help='Deck template id (default: bracket3)')
    parser.add_argument('--bracket', '-b', type=str, help='Bracket id (default: bracket3)')
    parser.add_argument('--banlist', type=str, help='Banlist id (reserved)')


def _add_output_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the JSON result to this file instead of stdout'
    )


def setup_logging(verbose: bool = False, quiet: bool = False, logs_dir: Optional[Path] = None) -> None:
    """
    Set up logging on stderr; stdout carries JSON results and the MCP protocol.

    Args:
        verbose: Enable verbose logging and a log file under ``logs_dir``
        quiet: Enable quiet mode (errors only)
        logs_dir: Directory for the verbose-mode log file
    """
    if quiet:
        level = logging.ERROR
        format_str = '%(levelname)s: %(message)s'
    elif verbose:
        level = logging.DEBUG
        format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:
        level = logging.INFO
        format_str = '%(levelname)s: %(message)s'

    class MultilineFormatter(logging.Formatter):
        def format(self, record):
            formatted = super().format(record)
            if '\n' in formatted:
                lines = formatted.split('\n')
                return '\n'.join([lines[0]] + ['  ' + line for line in lines[1:]])
            return formatted

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )

    for handler in logging.root.handlers:
        handler.setFormatter(MultilineFormatter(format_str, datefmt='%Y-%m-%d %H:%M:%S'))

    logging.getLogger('mtg_commander_analyzer').setLevel(level)

    if not verbose:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('mcp').setLevel(logging.WARNING)
        return

    if logs_dir is None:
        return

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"mtg_commander_analyzer_{time.strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(MultilineFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logging.root.addHandler(file_handler)
        logging.info(f"Detailed logs will be saved to: {log_file}")
    except OSError as e:
        logging.warning(f"Could not set up file logging: {e}")


def load_configuration(args: argparse.Namespace) -> Tuple[ConfigManager, AnalyzerConfig]:
    """Load the config file, apply environment overrides, then command-line overrides."""
    config_manager = ConfigManager(Path(args.config_dir).expanduser() if args.config_dir else None)
    config = apply_env_overrides(config_manager.get_config())

    if args.oracle_cards:
        config.oracle_cards_path = args.oracle_cards
    if getattr(args, 'no_cache', False):
        config.edhrec_cache_enabled = False

    return config_manager, config


def read_deck_text(deck_file: str) -> str:
    """Read decklist text from a file, or from stdin when the path is ``-``."""
    if deck_file == '-':
        return sys.stdin.read()

    path = Path(deck_file)
    if not path.exists():
        raise FileNotFoundError(f"Decklist file not found: {deck_file}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {deck_file}")
    return path.read_text(encoding='utf-8')


def write_result(result: Dict[str, Any], output: Optional[str]) -> None:
    """Write a JSON result to a file or stdout."""
    text = json.dumps(result, indent=2, ensure_ascii=False)
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n", encoding='utf-8')
        logging.info(f"Result written to {output_path}")
    else:
        print(text)


def command_analyze(args: argparse.Namespace, context: ServiceContext) -> None:
    analyze_input = AnalyzeDeckInput(
        deck_text=read_deck_text(args.deck_file),
        template_id=args.template,
        banlist_id=args.banlist,
        bracket_id=args.bracket,
    )
    result = run_analyze_deck(analyze_input, context)
    write_result(result.to_dict(), args.output)


def command_build(args: argparse.Namespace, context: ServiceContext) -> None:
    if not args.commander.strip():
        raise InputValidationError("Commander name cannot be empty")

    build_input = BuildDeckInput(
        commander_name=args.commander.strip(),
        template_id=args.template,
        banlist_id=args.banlist,
        bracket_id=args.bracket,
        seed_cards=args.seed,
        use_edhrec=args.edhrec,
        use_edhrec_autofill=args.autofill,
    )
    result = asyncio.run(run_build_deck(build_input, context))
    write_result(result.to_dict(), args.output)


def command_download_cards(args: argparse.Namespace, config: AnalyzerConfig, config_manager: ConfigManager) -> None:
    if args.destination:
        destination = Path(args.destination).expanduser()
    elif config.oracle_cards_path:
        destination = Path(config.oracle_cards_path).expanduser()
    else:
        destination = config_manager.get_oracle_cards_path()

    download_oracle_cards(destination, timeout=config.api_timeout_seconds)


def command_serve(context: ServiceContext) -> None:
    from . import server

    server.set_context(context)
    server.run_server()


def handle_user_friendly_errors(error: Exception, verbose: bool = False) -> str:
    """
    Convert technical errors into user-friendly error messages.

    Args:
        error: Exception to convert
        verbose: Whether to include technical details

    Returns:
        User-friendly error message
    """
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error}"

    elif isinstance(error, CommanderNotFoundError):
        return f"Commander issue: {error}"

    elif isinstance(error, CardDatabaseError):
        return f"Card database error: {error}"

    elif isinstance(error, BracketNotFoundError):
        return f"Bracket issue: {error}"

    elif isinstance(error, ReferenceDataError):
        return f"Reference data error: {error}"

    elif isinstance(error, ScryfallAPIError):
        return f"Scryfall service error: {error}"

    elif isinstance(error, EDHRECAPIError):
        return f"EDHREC service error: {error}"

    elif isinstance(error, (InputValidationError, ValueError)):
        return f"Invalid input: {error}"

    elif isinstance(error, OSError):
        return f"File system error: {error}"

    else:
        if verbose:
            return f"Unexpected error: {error}"
        else:
            return "An unexpected error occurred. Use --verbose for more details."


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the MTG Commander Analyzer CLI."""
    args = None

    try:
        args = parse_arguments(argv)

        config_manager, config = load_configuration(args)
        verbose = args.verbose or config.verbose_output
        setup_logging(verbose, args.quiet, config_manager.get_logs_dir())

        if args.command == 'download-cards':
            command_download_cards(args, config, config_manager)
            return

        context = create_default_context(config, config_manager)

        if args.command == 'analyze':
            command_analyze(args, context)
        elif args.command == 'build':
            command_build(args, context)
        elif args.command == 'serve':
            command_serve(context)

    except KeyboardInterrupt:
        if not (args and args.quiet):
            print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(1)

    except (FileNotFoundError, ValueError, CommanderNotFoundError, CardDatabaseError,
            ReferenceDataError, ScryfallAPIError, EDHRECAPIError) as e:
        print(f"Error: {handle_user_friendly_errors(e, bool(args and args.verbose))}", file=sys.stderr)
        sys.exit(1)

    except Exception as e:
        error_msg = handle_user_friendly_errors(e, bool(args and args.verbose))

        if args and args.verbose:
            logging.exception(f"Unexpected error: {e}")
        else:
            print(f"Error: {error_msg}", file=sys.stderr)

        sys.exit(1)


if __name__ == "__main__":
    main()
