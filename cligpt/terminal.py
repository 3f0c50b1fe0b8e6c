"""Line-oriented terminal input."""

from collections.abc import Callable

LineReader = Callable[[str], str]


class PromptReader:
    """Read one line at a time through prompt_toolkit.

    Raises EOFError on end of input and KeyboardInterrupt on Ctrl-C, like
    input(). No input history is kept across runs.
    """

    def __init__(self):
        from prompt_toolkit import PromptSession

        self._session = PromptSession()

    def __call__(self, label: str) -> str:
        return self._session.prompt(label)


def scripted_reader(lines) -> LineReader:
    """Return a reader that replays the given lines, then raises EOFError."""
    it = iter(lines)

    def read(label: str) -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    return read
