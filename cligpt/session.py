"""The interactive chat session: one REPL turn per state cycle."""

import enum
import logging

from . import fmt
from .config import ConfigStore
from .errors import ProtocolError, TransportError
from .gateway import ChatGateway, Result
from .history import ConversationHistory, ConversationTurn
from .request import build_messages, estimate_tokens
from .terminal import LineReader

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"

CONFIG_REQUIRED_NOTICE = (
    "No API key configured. Run with -key to add your OpenAI API key."
)


class State(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    AWAITING_INPUT = "awaiting_input"
    AWAITING_RESPONSE = "awaiting_response"
    TERMINATED = "terminated"


class SessionLoop:
    """Drives the chat REPL as an explicit state machine.

    Settings are read from the store once, on the first transition. The
    conversation history belongs to this object; a failed round-trip
    leaves it untouched.
    """

    def __init__(
        self,
        store: ConfigStore,
        gateway: ChatGateway,
        read_line: LineReader,
        *,
        history: ConversationHistory | None = None,
        verbose: bool = True,
    ):
        self.store = store
        self.gateway = gateway
        self.read_line = read_line
        self.history = history if history is not None else ConversationHistory()
        self.verbose = verbose

        self.state = State.UNINITIALIZED
        self.credential = ""
        self.gpt_name = ""
        self.personality = ""
        self.user_name = ""
        self._pending: str | None = None
        self._count_tokens = True

    def step(self) -> State:
        """Perform exactly one state transition and return the new state."""
        handler = {
            State.UNINITIALIZED: self._start,
            State.READY: self._ready,
            State.AWAITING_INPUT: self._read_prompt,
            State.AWAITING_RESPONSE: self._respond,
            State.TERMINATED: lambda: State.TERMINATED,
        }[self.state]
        self.state = handler()
        return self.state

    def run(self) -> int:
        """Run until terminated. Always returns exit status 0."""
        while self.state is not State.TERMINATED:
            self.step()
        return 0

    def ask(self, prompt: str) -> Result:
        """One round-trip for prompt; on success the turn joins the history."""
        messages = build_messages(self.personality, self.history, prompt)
        if self.verbose:
            self._show_context(messages)
            with fmt.waiting():
                result = self.gateway.complete(messages, self.credential)
        else:
            result = self.gateway.complete(messages, self.credential)
        if result.ok:
            self.history.append(ConversationTurn(prompt, result.reply))
            logger.debug("history holds %d turns", len(self.history))
        return result

    def _show_context(self, messages: list[dict]) -> None:
        if not self._count_tokens:
            return
        try:
            tokens = estimate_tokens(messages)
        except (OSError, ValueError) as e:
            fmt.warning(f"token count unavailable: {e}")
            self._count_tokens = False
            return
        fmt.context_stats(len(self.history), tokens)

    # -- Transitions ---------------------------------------------------------

    def _start(self) -> State:
        self.history.clear()
        settings = self.store.settings()
        self.credential = settings["GPT_KEY"]
        self.gpt_name = settings["GPT_NAME"]
        self.personality = settings["PERSONALITY"]
        self.user_name = settings["USER_NAME"]

        if not self.credential:
            fmt.notice(CONFIG_REQUIRED_NOTICE)
            return State.TERMINATED
        if self.verbose:
            fmt.greeting(self.user_name)
        return State.READY

    def _ready(self) -> State:
        self._pending = None
        return State.AWAITING_INPUT

    def _read_prompt(self) -> State:
        try:
            line = self.read_line(fmt.prompt_label(self.user_name))
        except (EOFError, KeyboardInterrupt):
            return State.TERMINATED
        if line == EXIT_COMMAND:
            return State.TERMINATED
        self._pending = line
        return State.AWAITING_RESPONSE

    def _respond(self) -> State:
        result = self.ask(self._pending)
        if result.ok:
            fmt.reply(self.gpt_name, result.reply)
        elif isinstance(result.error, TransportError):
            fmt.error(f"request failed: {result.error}")
        elif isinstance(result.error, ProtocolError):
            fmt.error(f"unexpected response: {result.error}")
        else:
            fmt.error(str(result.error))
        return State.READY
