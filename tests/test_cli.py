"""Tests for flag parsing, first-run setup and the dispatch loop."""

import io
import json
import urllib.error
from unittest.mock import patch

import pytest

from cligpt import cli, fmt
from cligpt.cli import build_parser, dispatch, ensure_store, main, parse_args, run
from cligpt.config import ConfigStore
from cligpt.gateway import ChatGateway
from cligpt.menus import Mode
from cligpt.terminal import scripted_reader


@pytest.fixture(autouse=True)
def _init_fmt():
    fmt.init(color=False, no_color=True)


def _args(tmp_path, argv=()):
    args, _ = build_parser().parse_known_args(
        [*argv, "--env-file", str(tmp_path / ".env"), "--quiet"]
    )
    return args


def _write_env(tmp_path, key="sk-test-123456"):
    (tmp_path / ".env").write_text(
        f"GPT_KEY={key}\nGPT_NAME=Robo\nPERSONALITY=Friendly AI\nUSER_NAME=Ann\n",
        encoding="utf-8",
    )


class _FakeResponse:
    def __init__(self, text):
        self._body = json.dumps(
            {"choices": [{"message": {"role": "assistant", "content": text}}]}
        ).encode()
        self.status = 200

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestArgumentParsing:
    def test_no_args(self):
        args = build_parser().parse_args([])
        assert args.commands is None
        assert args.env_file == ".env"
        assert args.model == "gpt-3.5-turbo"
        assert args.temperature == 0.7

    @pytest.mark.parametrize(
        "flag, command", [("-help", "help"), ("-key", "key"), ("-customize", "customize")]
    )
    def test_command_flags(self, flag, command):
        assert build_parser().parse_args([flag]).commands == [command]

    def test_first_flag_wins(self):
        args = build_parser().parse_args(["-customize", "-key", "-help"])
        assert args.commands[0] == "customize"

    def test_unknown_flags_ignored(self):
        args, extras = build_parser().parse_known_args(["-bogus", "-key"])
        assert args.commands == ["key"]
        assert "-bogus" in extras

    def test_double_dash_help_alias(self):
        assert build_parser().parse_args(["--help"]).commands == ["help"]

    @pytest.mark.parametrize("flag", ["-k", "-ke", "-cust", "-c", "-h", "-hel"])
    def test_abbreviated_flags_ignored(self, flag):
        assert parse_args([flag]).commands is None

    def test_abbreviated_long_option_ignored(self):
        args = parse_args(["--mod", "gpt-4o"])
        assert args.model == "gpt-3.5-turbo"

    def test_exact_flags_still_recognized(self):
        args = parse_args(["-k", "-customize", "-q", "--model", "gpt-4o"])
        assert args.commands == ["customize"]
        assert args.quiet
        assert args.model == "gpt-4o"


# ---------------------------------------------------------------------------
# First run
# ---------------------------------------------------------------------------


class TestEnsureStore:
    def test_creates_defaults_and_welcomes(self, tmp_path, capsys):
        store = ConfigStore(tmp_path / ".env")
        ensure_store(store)
        assert store.path.read_text() == (
            "GPT_KEY=\nGPT_NAME=ChatGPT\nPERSONALITY=Friendly AI\nUSER_NAME=User\n"
        )
        assert "Welcome to CLI GPT!" in capsys.readouterr().err

    def test_existing_store_untouched(self, tmp_path, capsys):
        _write_env(tmp_path)
        before = (tmp_path / ".env").read_text()
        ensure_store(ConfigStore(tmp_path / ".env"))
        assert (tmp_path / ".env").read_text() == before
        assert "Welcome" not in capsys.readouterr().err


# ---------------------------------------------------------------------------
# run / dispatch
# ---------------------------------------------------------------------------


class TestRun:
    def test_help_has_no_side_effects(self, tmp_path, capsys):
        assert run(_args(tmp_path, ["-help"]), scripted_reader([])) == 0
        assert not (tmp_path / ".env").exists()
        assert "Usage:" in capsys.readouterr().err

    def test_first_run_without_key_exits_zero(self, tmp_path, capsys):
        with patch("urllib.request.urlopen") as mock_open:
            assert run(_args(tmp_path), scripted_reader(["Hello"])) == 0
        mock_open.assert_not_called()
        err = capsys.readouterr().err
        assert "Welcome to CLI GPT!" in err
        assert "No API key configured" in err

    def test_chat_round_trip(self, tmp_path, capsys):
        _write_env(tmp_path)
        with patch("urllib.request.urlopen", return_value=_FakeResponse("Hi Ann")) as mock_open:
            assert run(_args(tmp_path), scripted_reader(["Hello", "exit"])) == 0
        assert mock_open.call_count == 1
        req = mock_open.call_args[0][0]
        assert req.get_header("Authorization") == "Bearer sk-test-123456"
        assert "Robo: Hi Ann" in capsys.readouterr().out

    def test_request_options(self, tmp_path):
        _write_env(tmp_path)
        args = _args(
            tmp_path,
            ["--model", "gpt-4o", "--temperature", "0.2", "--base-url", "http://h/v1"],
        )
        with patch("urllib.request.urlopen", return_value=_FakeResponse("ok")) as mock_open:
            run(args, scripted_reader(["Hello", "exit"]))
        req = mock_open.call_args[0][0]
        assert req.full_url == "http://h/v1/chat/completions"
        body = json.loads(req.data)
        assert body["model"] == "gpt-4o"
        assert body["temperature"] == 0.2

    def test_key_menu_then_back_to_chat(self, tmp_path, capsys):
        lines = ["2", "sk-fresh-key-999", "4", "Hello", "exit"]
        with patch("urllib.request.urlopen", return_value=_FakeResponse("hey")) as mock_open:
            assert run(_args(tmp_path, ["-key"]), scripted_reader(lines)) == 0
        req = mock_open.call_args[0][0]
        assert req.get_header("Authorization") == "Bearer sk-fresh-key-999"
        assert "ChatGPT: hey" in capsys.readouterr().out

    def test_customize_then_exit(self, tmp_path):
        _write_env(tmp_path)
        with patch("urllib.request.urlopen") as mock_open:
            assert run(_args(tmp_path, ["-customize"]), scripted_reader(["1", "Bot", "5"])) == 0
        mock_open.assert_not_called()
        assert ConfigStore(tmp_path / ".env").get("GPT_NAME") == "Bot"

    def test_unknown_flag_starts_chat(self, tmp_path, capsys):
        _write_env(tmp_path)
        with patch("urllib.request.urlopen", return_value=_FakeResponse("hi")):
            assert run(_args(tmp_path, ["-bogus"]), scripted_reader(["Hello", "exit"])) == 0
        assert "Robo: hi" in capsys.readouterr().out

    def test_failed_turn_is_not_fatal(self, tmp_path, capsys):
        _write_env(tmp_path)
        responses = [urllib.error.URLError("down"), _FakeResponse("back")]

        def fake_urlopen(req):
            r = responses.pop(0)
            if isinstance(r, Exception):
                raise r
            return r

        with patch("urllib.request.urlopen", side_effect=fake_urlopen):
            assert run(_args(tmp_path), scripted_reader(["one", "two", "exit"])) == 0
        captured = capsys.readouterr()
        assert "request failed" in captured.err
        assert "Robo: back" in captured.out


class TestDispatch:
    def test_eof_in_menu_exits(self, tmp_path):
        store = ConfigStore(tmp_path / ".env")
        store.initialize_defaults()
        code = dispatch(Mode.KEY_MENU, store, ChatGateway(), scripted_reader([]))
        assert code == 0

    def test_ctrl_c_during_request_exits_cleanly(self, tmp_path):
        _write_env(tmp_path)
        with patch("urllib.request.urlopen", side_effect=KeyboardInterrupt):
            code = dispatch(
                Mode.CHAT,
                ConfigStore(tmp_path / ".env"),
                ChatGateway(),
                scripted_reader(["Hello"]),
                verbose=False,
            )
        assert code == 0

    def test_exit_mode_is_immediate(self, tmp_path):
        assert dispatch(Mode.EXIT, ConfigStore(tmp_path / ".env"), ChatGateway(), None) == 0


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


class TestMain:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.strip()

    def test_help_exit_code(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["-help"])
        assert exc.value.code == 0

    def test_exit_code_zero_without_key(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "_make_reader", lambda: scripted_reader(["Hello"]))
        with pytest.raises(SystemExit) as exc:
            main(["--env-file", str(tmp_path / ".env"), "--no-color"])
        assert exc.value.code == 0

    def test_bad_base_url_exits_zero(self, tmp_path, monkeypatch, capsys):
        _write_env(tmp_path)
        monkeypatch.setattr(cli, "_make_reader", lambda: scripted_reader(["Hello", "exit"]))
        with pytest.raises(SystemExit) as exc:
            main(
                ["--env-file", str(tmp_path / ".env"), "--quiet", "--no-color",
                 "--base-url", "api.example.com/v1"]
            )
        assert exc.value.code == 0
        assert "request failed" in capsys.readouterr().err

    def test_piped_stdin_reader(self, monkeypatch):
        monkeypatch.setattr(cli.sys, "stdin", io.StringIO("hello\n exit \nexit\n"))
        read = cli._make_reader()
        assert read("User: ") == "hello"
        assert read("User: ") == " exit "
        assert read("User: ") == "exit"
        with pytest.raises(EOFError):
            read("User: ")
