"""Unit tests for the main CLI entry point."""

import pytest
from typer.testing import CliRunner

from shellmind.config import ShellmindConfig, get_user_config_path, load_config_file
from shellmind.errors import FatalTransportError
from shellmind.main import (
    app,
    display_answer,
    display_result,
    execute_command_mode,
    execute_llm_mode,
    handle_error,
)
from shellmind.aggregator import Answer
from shellmind.session import AssistantSession
from tests.fakes import FakeTransport, disconnected_stream, make_config

runner = CliRunner()


def fake_session(outcomes, **overrides):
    config = make_config(**overrides)
    return AssistantSession(config, FakeTransport(config, outcomes))


@pytest.fixture
def patch_session(mocker):
    """Make the CLI use a session backed by scripted outcomes."""

    def install(outcomes, **overrides):
        session = fake_session(outcomes, **overrides)
        mocker.patch.object(AssistantSession, "from_config", return_value=session)
        return session

    return install


def test_main_no_args_shows_welcome():
    """Test that running with no arguments shows the welcome message."""
    result = runner.invoke(app, [])
    assert result.exit_code == 0
    assert "Shellmind - Natural Language to Shell Commands" in result.stdout
    assert "Goodbye!" in result.stdout


def test_version_callback():
    """Test the --version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "Shellmind version 0.1.0" in result.stdout


def test_show_config_callback():
    """Test the --show-config flag."""
    result = runner.invoke(app, ["--show-config"])
    assert result.exit_code == 0
    assert "Shellmind Configuration" in result.stdout
    assert "gemini-1.5-flash" in result.stdout


def test_setup_callback():
    """Test the --setup flag."""
    result = runner.invoke(app, ["--setup"], input="my-api-key\n2\n")
    assert result.exit_code == 0
    assert "Shellmind Setup Wizard" in result.stdout
    assert "Setup complete!" in result.stdout

    saved = load_config_file(get_user_config_path())
    assert saved["api_type"] == "streaming"
    assert "api_key" not in saved


def test_setup_invalid_choice():
    result = runner.invoke(app, ["--setup"], input="my-api-key\n9\n")
    assert result.exit_code == 1
    assert "Invalid choice" in result.stdout


def test_one_shot_request(patch_session):
    """A query on the command line prints the suggested command."""
    session = patch_session(["ls -la"])

    result = runner.invoke(app, ["list", "all", "files"])

    assert result.exit_code == 0
    assert "ls -la" in result.stdout
    assert session.transport.requests[0].turns[-1].text == "list all files"


def test_one_shot_quiet(patch_session):
    patch_session(["du -sh ."])

    result = runner.invoke(app, ["--quiet", "size", "of", "this", "dir"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "du -sh ."


def test_one_shot_transport_failure(patch_session):
    patch_session([FatalTransportError("API request failed with status 401: bad key")])

    result = runner.invoke(app, ["list", "files"])

    assert result.exit_code == 1
    assert "Error:" in result.stdout
    assert "bad key" in result.stdout


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("SHELLMIND_API_KEY")

    result = runner.invoke(app, ["list", "files"])

    assert result.exit_code == 1
    assert "No API key configured" in result.stdout
    assert "shellmind --setup" in result.stdout


def test_invalid_config_file(temp_dir):
    config_path = temp_dir / "bad.toml"
    config_path.write_text("max_retries = -4\n")

    result = runner.invoke(app, ["--config-file", str(config_path), "list", "files"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout


def test_command_mode_from_cli():
    result = runner.invoke(app, ["/help"])

    assert result.exit_code == 0
    assert "AVAILABLE COMMANDS" in result.stdout


def test_exit_command_from_cli():
    result = runner.invoke(app, ["/exit"])

    assert result.exit_code == 0


def test_interactive_session(patch_session):
    """Requests and commands share one conversation until exit."""
    patch_session(["ls -la"])

    result = runner.invoke(
        app, [], input="/history\n\nlist files\n/history\nexit\n"
    )

    assert result.exit_code == 0
    assert "Conversation history is empty." in result.stdout
    assert "ls -la" in result.stdout
    assert "[USER] list files" in result.stdout
    assert "Goodbye!" in result.stdout


def test_interactive_session_survives_errors(patch_session):
    patch_session([FatalTransportError("API request failed with status 400: nope"), "pwd"])

    result = runner.invoke(app, [], input="where am i\nwhere am i\n/quit\n")

    assert result.exit_code == 0
    assert "nope" in result.stdout
    assert "pwd" in result.stdout
    assert "Goodbye!" in result.stdout


def test_interactive_session_rejects_empty_request(patch_session):
    session = patch_session([])

    result = runner.invoke(app, [], input="   \nexit\n")

    assert result.exit_code == 0
    assert session.transport.calls == 0


def test_command_mode_execution(mocker):
    """Test command proxy mode."""
    mock_proxy = mocker.patch("shellmind.main.CommandProxy")
    mock_instance = mock_proxy.return_value
    mock_instance.execute.return_value = "command output"

    session = fake_session([])
    execute_command_mode("/help", session)
    mock_instance.execute.assert_called_with("/help")


async def test_llm_mode_execution(capsys):
    """Test LLM chat mode."""
    session = fake_session(["echo hello"])

    answer = await execute_llm_mode("say hello", session, quiet=True)

    assert answer == Answer("echo hello")
    assert "echo hello" in capsys.readouterr().out


async def test_llm_mode_partial_answer(capsys):
    session = fake_session([disconnected_stream(["git st"])])

    answer = await execute_llm_mode("git status", session)

    assert answer.finished_cleanly is False
    out = capsys.readouterr().out
    assert "git st" in out
    assert "interrupted" in out


def test_display_answer(capsys):
    display_answer(Answer("ls"), ShellmindConfig())
    captured = capsys.readouterr()
    assert "Command" in captured.out
    assert "interrupted" not in captured.out


def test_display_result(capsys):
    """Test result display."""
    config = ShellmindConfig(rich_output=True)
    display_result("test result", config)
    captured = capsys.readouterr()
    assert "Result" in captured.out
    assert "test result" in captured.out

    config = ShellmindConfig(rich_output=False)
    display_result("plain result", config)
    captured = capsys.readouterr()
    assert "Result:" in captured.out
    assert "plain result" in captured.out

    display_result("[bold]kept[/bold]", config, quiet=True)
    assert "[bold]kept[/bold]" in capsys.readouterr().out


def test_handle_error(capsys):
    """Test error handling."""
    handle_error(ValueError("test error"), debug=False)
    captured = capsys.readouterr()
    assert "Error:" in captured.out
    assert "test error" in captured.out

    try:
        raise ValueError("debug error")
    except ValueError as e:
        handle_error(e, debug=True)

    captured = capsys.readouterr()
    assert "Debug Error Details" in captured.out
    assert "ValueError" in captured.out
