"""Command-line entry point: flag parsing, first-run setup and dispatch."""

import argparse
import logging
import sys
from importlib import metadata

from . import fmt
from .config import DEFAULT_ENV_FILE, ConfigStore
from .errors import ConfigWriteFailure
from .gateway import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TEMPERATURE, ChatGateway
from .menus import Mode, customize_menu, key_menu
from .session import SessionLoop
from .terminal import LineReader, PromptReader, scripted_reader

_COMMAND_MODES = {
    None: Mode.CHAT,
    "key": Mode.KEY_MENU,
    "customize": Mode.CUSTOMIZE,
}


def build_parser():
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cligpt",
        add_help=False,
        allow_abbrev=False,
        usage="%(prog)s [-help | -key | -customize] [options]",
        description="Chat with ChatGPT from the command line.",
    )
    # Command flags: when several are given, the first one wins.
    parser.add_argument(
        "-help",
        "--help",
        dest="commands",
        action="append_const",
        const="help",
        help="Show the help message and exit.",
    )
    parser.add_argument(
        "-key",
        dest="commands",
        action="append_const",
        const="key",
        help="Manage your API key (view, update, remove).",
    )
    parser.add_argument(
        "-customize",
        dest="commands",
        action="append_const",
        const="customize",
        help="Customize the assistant's name, personality, or your name.",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help=f"Settings file (default: {DEFAULT_ENV_FILE} in the current directory).",
    )
    parser.add_argument(
        "--model",
        default=DEFAULT_MODEL,
        help=f"Model identifier sent with each request (default: {DEFAULT_MODEL}).",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=DEFAULT_TEMPERATURE,
        help=f"Sampling temperature (default: {DEFAULT_TEMPERATURE}).",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL}).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress informational output; replies and errors are still shown.",
    )
    color_group = parser.add_mutually_exclusive_group()
    color_group.add_argument(
        "--color", action="store_true", help="Force colored output."
    )
    color_group.add_argument(
        "--no-color", action="store_true", help="Disable colored output."
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log request details to stderr.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the version and exit.",
    )
    return parser


_SINGLE_DASH_FLAGS = ("-help", "-key", "-customize", "-q")


def parse_args(argv=None):
    """Parse argv. Unrecognized and abbreviated flags are ignored."""
    if argv is None:
        argv = sys.argv[1:]
    # Some argparse releases prefix-match single-dash flags even with
    # allow_abbrev off, so "-k" would select "-key".
    argv = [
        arg
        for arg in argv
        if arg in _SINGLE_DASH_FLAGS
        or len(arg) < 2
        or not any(flag.startswith(arg) for flag in _SINGLE_DASH_FLAGS)
    ]
    args, _ = build_parser().parse_known_args(argv)
    return args


def _make_reader() -> LineReader:
    if sys.stdin.isatty():
        return PromptReader()
    return scripted_reader(line.removesuffix("\n") for line in sys.stdin)


def ensure_store(store: ConfigStore) -> None:
    """Create the settings file with defaults on first run."""
    if store.exists():
        return
    try:
        store.initialize_defaults()
    except ConfigWriteFailure as e:
        fmt.error(str(e))
        return
    fmt.welcome()


def dispatch(
    mode: Mode,
    store: ConfigStore,
    gateway: ChatGateway,
    read_line: LineReader,
    *,
    verbose: bool = True,
) -> int:
    """Run menus and the chat session until the user exits. Returns 0."""
    while mode is not Mode.EXIT:
        try:
            if mode is Mode.KEY_MENU:
                mode = key_menu(store, read_line)
            elif mode is Mode.CUSTOMIZE:
                mode = customize_menu(store, read_line)
            else:
                SessionLoop(store, gateway, read_line, verbose=verbose).run()
                mode = Mode.EXIT
        except (EOFError, KeyboardInterrupt):
            mode = Mode.EXIT
    return 0


def run(args, read_line: LineReader | None = None) -> int:
    command = args.commands[0] if args.commands else None
    if command == "help":
        fmt.usage()
        return 0

    store = ConfigStore(args.env_file)
    ensure_store(store)

    gateway = ChatGateway(
        base_url=args.base_url, model=args.model, temperature=args.temperature
    )
    if read_line is None:
        read_line = _make_reader()
    return dispatch(
        _COMMAND_MODES[command], store, gateway, read_line, verbose=not args.quiet
    )


def main(argv=None):
    # Unrecognized flags are ignored and the chat starts as usual.
    args = parse_args(argv)

    if args.version:
        try:
            version = metadata.version("cligpt")
        except metadata.PackageNotFoundError:
            version = "unknown"
        print(version)
        sys.exit(0)

    fmt.init(color=args.color, no_color=args.no_color)
    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
