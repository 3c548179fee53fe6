from typing import Any, List, Optional
import sys
import os
import argparse
from pathlib import Path
import logging

##################################################################################################
# Main
##################################################################################################

ArgParser = argparse.ArgumentParser

class Commands:
    def __init__(self, parser: ArgParser) -> None:
        self.root_parser = parser
        self.subparsers = parser.add_subparsers(dest='command')

    class Command:
        def __init__(self, commands: 'Commands', name: str, help: str) -> None:
            self.parser = commands.subparsers.add_parser(name, help=help)

        def __enter__(self) -> ArgParser:
            return self.parser

        def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
            pass

    def __call__(self, name: str, help: str) -> Any:
        return Commands.Command(self, name, help)


def main(argv: Optional[List[str]] = None) -> int:
    if sys.platform.lower() == "win32":
        os.system('color')
        sys.stdout.reconfigure(encoding='utf-8') # type: ignore
        sys.stderr.reconfigure(encoding='utf-8') # type: ignore

    logging.basicConfig(level=logging.INFO, format='%(message)s')

    parser = argparse.ArgumentParser(prog='stagestat')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging.')
    commands = Commands(parser)

    with commands('status', help='print status information with diffstat') as cmd:
        cmd.add_argument('-C', dest='directory', type=str, default='.',
                         help='Run as if started in this directory.')
        cmd.add_argument('--reference', type=str, default='HEAD',
                         help='Reference to compare the index against (default: HEAD).')
        cmd.add_argument('--color', choices=['always', 'never', 'auto'], default=None)
        cmd.add_argument('pathspec', nargs='*', help='Limit the report to these paths, relative to the repository root.')

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    match args.command:
        case 'status':
            from stagestat.config import ColorMode, StatusConfig
            from stagestat.exceptions import StatusError
            from stagestat.messages import error
            from stagestat.tasks.status import status

            try:
                status(Path(args.directory), reference=args.reference,
                       paths=args.pathspec or None, color=args.color)
            except StatusError as e:
                mode = ColorMode.parse(args.color) if args.color else ColorMode.AUTO
                error(str(e), config=StatusConfig(use_color=mode.enabled(sys.stdout)))
                return 1

        case _:
            raise ValueError(f"Unknown command: {args.command}")

    return 0
