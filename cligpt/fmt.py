"""ANSI-formatted terminal output using Rich.

Diagnostics go to stderr; conversation lines go to stdout.
"""

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

_console = Console(stderr=True)
_out = Console()


def init(*, color: bool = False, no_color: bool = False) -> None:
    """Reconfigure the module-level consoles from CLI flags.

    Call once at startup, before any output.
    """
    global _console, _out
    kwargs: dict = {}
    if color:
        kwargs["force_terminal"] = True
        kwargs["no_color"] = False
    if no_color:
        kwargs["no_color"] = True
    _console = Console(stderr=True, **kwargs)
    _out = Console(**kwargs)


# -- Conversation ------------------------------------------------------------


def greeting(user_name: str) -> None:
    line = Text()
    line.append(user_name, style="cyan")
    line.append(": Hello! Type 'exit' to quit.")
    _out.print(line)


def prompt_label(user_name: str) -> str:
    """Plain-text prompt shown before each line of input."""
    return f"{user_name}: "


def reply(gpt_name: str, text: str) -> None:
    line = Text()
    line.append(f"{gpt_name}: ", style="bold green")
    line.append(text)
    _out.print(line)


def context_stats(turns: int, tokens: int) -> None:
    _console.print(
        Text(f"  context: {turns} turns, ~{tokens} tokens", style="dim")
    )


def waiting(label: str = "Waiting for reply"):
    """Return a Rich Status context manager that spins on stderr."""
    return _console.status(f"  {label}", spinner="dots")


# -- Menus -------------------------------------------------------------------


def menu(title: str, options: list[str]) -> None:
    _console.print(Rule(title, style="cyan"))
    for i, label in enumerate(options, 1):
        line = Text()
        line.append(f"  {i}. ", style="bold cyan")
        line.append(label)
        _console.print(line)


def credential(masked: str) -> None:
    line = Text()
    line.append("  API key: ", style="bold")
    line.append(masked, style="yellow")
    _console.print(line)


# -- Help --------------------------------------------------------------------


def welcome() -> None:
    _console.print(
        Text("Welcome to CLI GPT!", style="bold green"),
        Text("This is a command-line interface for chatting with ChatGPT."),
        Text("You'll need an OpenAI API key to use this app.\n"),
        Text(
            "Flags:\n"
            "  -help        Show this help message\n"
            "  -key         Manage your API key (view, update, remove)\n"
            "  -customize   Customize ChatGPT's name, personality, or your name"
        ),
        sep="\n",
    )


def usage(prog: str = "cligpt") -> None:
    _console.print(
        Text("CLI GPT - Command Line Interface for ChatGPT", style="bold"),
        Text(
            "Usage:\n"
            f"  {prog}              Start the app\n"
            f"  {prog} -key         Manage your API key\n"
            f"  {prog} -customize   Customize ChatGPT's settings\n"
            f"  {prog} -help        Show this help message"
        ),
        sep="\n",
    )


# -- Diagnostics -------------------------------------------------------------


def info(msg: str) -> None:
    _console.print(Text(f"  {msg}", style="dim"))


def notice(msg: str) -> None:
    _console.print(Text(msg, style="bold yellow"))


def warning(msg: str) -> None:
    line = Text()
    line.append("  \u26a0 Warning: ", style="yellow")
    line.append(msg, style="yellow")
    _console.print(line)


def error(msg: str) -> None:
    line = Text()
    line.append("Error: ", style="bold red")
    line.append(msg, style="red")
    _console.print(line)
