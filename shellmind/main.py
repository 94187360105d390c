"""Main entry point for the Shellmind CLI."""

import asyncio
from typing import List, Optional

import typer
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from shellmind.aggregator import Answer
from shellmind.command_proxy import CommandProxy, ExitRequested
from shellmind.config import (
    ApiType,
    ConfigurationError,
    ShellmindConfig,
    load_configuration,
    save_config,
    validate_api_setup,
)
from shellmind.errors import RequestCancelledError, ShellmindError
from shellmind.logs import configure_logging
from shellmind.session import AssistantSession
from shellmind.ui import PROMPT, console, result_panel

# Initialize Typer app with rich formatting
app = typer.Typer(
    name="shellmind",
    help="Shellmind - turn natural language into shell commands",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=False,  # No args starts the interactive session
)


def show_welcome():
    """Display welcome message with usage instructions."""
    welcome_text = """
# Shellmind - Natural Language to Shell Commands

Describe what you want to do and Shellmind suggests the command.

```bash
shellmind find all python files modified today
shellmind compress the logs directory into a tarball
shellmind /model set gemini-1.5-pro
```

In this session type a request, `/help` for commands, or `exit` to quit.
    """

    console.print(
        Panel(
            Markdown(welcome_text),
            title="[bold blue]Shellmind[/bold blue]",
            border_style="blue",
        )
    )


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        from shellmind import __version__

        console.print(f"Shellmind version {__version__}")
        raise typer.Exit()


def show_config_callback(value: bool):
    """Show current configuration and exit."""
    if value:
        try:
            config = load_configuration()

            console.print("\n[bold blue]Shellmind Configuration[/bold blue]")
            console.print(
                f"API Key: [green]{'✓ Set' if config.api_key else '✗ Not set'}[/green]"
            )
            console.print(f"Model: [cyan]{config.model_name}[/cyan]")
            console.print(f"Temperature: [cyan]{config.temperature}[/cyan]")
            console.print(
                f"Context window size: [cyan]{config.context_window_size}[/cyan]"
            )
            console.print(f"API type: [cyan]{config.api_type.value}[/cyan]")
            if config.api_type == ApiType.STREAMING:
                console.print(
                    f"Streaming endpoint: [dim]{config.get_streaming_endpoint()}[/dim]"
                )
            else:
                console.print(f"API base URL: [dim]{config.api_base_url}[/dim]")
            console.print(f"Request timeout: [cyan]{config.request_timeout_ms}ms[/cyan]")
            console.print(f"Max retries: [cyan]{config.max_retries}[/cyan]")
            console.print("System prompt:", Text(config.system_prompt or "(none)"))

        except ShellmindError as e:
            console.print(
                "[bold red]Error loading configuration:[/bold red]", Text(str(e))
            )
            raise typer.Exit(1)
        raise typer.Exit()


def setup_callback(value: bool):
    """Run interactive setup wizard and exit."""
    if value:
        console.print("\n[bold blue]Shellmind Setup Wizard[/bold blue]")
        console.print("This will help you configure Shellmind for first use.\n")

        console.print("[bold]1. Get your Gemini API key:[/bold]")
        console.print("   Visit: https://aistudio.google.com/app/apikey")
        api_key = typer.prompt("\nEnter your API key", hide_input=True)

        console.print("\n[bold]2. Choose how to talk to the model:[/bold]")
        console.print("   1) HTTP (one request, one response)")
        console.print("   2) Streaming (answer arrives as it is generated)")
        choice = typer.prompt("Enter choice (1-2)", type=int, default=1)

        if choice == 1:
            api_type = ApiType.HTTP
        elif choice == 2:
            api_type = ApiType.STREAMING
        else:
            console.print("[red]Invalid choice[/red]")
            raise typer.Exit(1)

        config = ShellmindConfig(api_type=api_type)
        save_config(config)

        console.print("\n[bold]3. Save your API key:[/bold]")
        console.print("   Add this to your shell profile (.bashrc, .zshrc, etc.):")
        console.print(f'   [code]export GEMINI_API_KEY="{api_key[:8]}..."[/code]')
        console.print(
            "   Then reload your terminal or run: [code]source ~/.bashrc[/code]"
        )

        console.print("\n[bold green]Setup complete![/bold green]")
        console.print("Try: [code]shellmind list files by size[/code]")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    query: List[str] = typer.Argument(
        None, help="What you want to do. Use /command for built-in commands."
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug output and detailed error information",
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config-file", "-c", help="Path to custom configuration file"
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Override the Gemini model (e.g., gemini-1.5-pro)",
    ),
    api_type: Optional[str] = typer.Option(
        None,
        "--api-type",
        "-a",
        help="Override the wire protocol (http, streaming)",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Minimize output, show only results"
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information and exit.",
    ),
    show_config: Optional[bool] = typer.Option(
        None,
        "--show-config",
        callback=show_config_callback,
        is_eager=True,
        help="Show current configuration and exit.",
    ),
    setup: Optional[bool] = typer.Option(
        None,
        "--setup",
        callback=setup_callback,
        is_eager=True,
        help="Run the interactive setup wizard and exit.",
    ),
):
    """Main function for the Shellmind CLI."""
    try:
        config = load_configuration(
            config_file=config_file,
            debug=debug,
            model_override=model,
            api_type_override=api_type,
        )
        configure_logging(config.log_level)
        session = AssistantSession.from_config(config)

        if not query:
            if not quiet:
                show_welcome()
            run_repl(session, quiet)
            raise typer.Exit()

        input_text = " ".join(query)

        # Decide execution mode
        if input_text.startswith("/"):
            execute_command_mode(input_text, session, quiet)
        else:
            asyncio.run(execute_llm_mode(input_text, session, quiet))

    except ConfigurationError as e:
        handle_error(e, debug)
        console.print("\n[bold]Tip:[/bold] Run `shellmind --setup` to get started.")
        raise typer.Exit(1)
    except ExitRequested:
        raise typer.Exit()
    except (RequestCancelledError, KeyboardInterrupt):
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except ShellmindError as e:
        handle_error(e, debug)
        raise typer.Exit(1)


def run_repl(session: AssistantSession, quiet: bool = False):
    """Read requests until the user leaves."""
    proxy = CommandProxy(session)

    while True:
        try:
            line = console.input(PROMPT)
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        text = line.strip()
        if not text:
            continue
        if text.lower() in ("exit", "quit"):
            break

        try:
            if text.startswith("/"):
                execute_command_mode(text, session, quiet, proxy=proxy)
            else:
                asyncio.run(execute_llm_mode(text, session, quiet))
        except ExitRequested:
            break
        except (RequestCancelledError, KeyboardInterrupt):
            console.print("[yellow]Cancelled.[/yellow]")
        except ShellmindError as e:
            handle_error(e, session.config.show_debug)

    if not quiet:
        console.print("[yellow]Goodbye![/yellow]")


def execute_command_mode(
    input_text: str,
    session: AssistantSession,
    quiet: bool = False,
    proxy: Optional[CommandProxy] = None,
):
    """Execute a slash command."""
    handler = proxy or CommandProxy(session)
    result = handler.execute(input_text)

    if result:
        display_result(result, session.config, quiet)


async def execute_llm_mode(
    input_text: str, session: AssistantSession, quiet: bool = False
) -> Answer:
    """Send a request to the model and show the answer."""
    validate_api_setup(session.config)

    if not quiet:
        with console.status(
            f"[dim]Thinking with {session.params.model_name}...[/dim]"
        ):
            answer = await session.handle_input(input_text)
    else:
        answer = await session.handle_input(input_text)

    display_answer(answer, session.config, quiet)
    return answer


def display_answer(answer: Answer, config: ShellmindConfig, quiet: bool = False):
    """Display the model's answer, flagging partial ones."""
    display_result(answer.text, config, quiet, title="Command")
    if not answer.finished_cleanly:
        console.print(
            "[yellow]The stream was interrupted; this answer may be incomplete "
            "and was not added to the conversation.[/yellow]"
        )


def display_result(
    result: str, config: ShellmindConfig, quiet: bool = False, title: str = "Result"
):
    """Display result with appropriate formatting."""
    if not result:
        return

    if quiet:
        # Minimal output
        console.print(Text(result))
    elif config.rich_output:
        # Rich formatted output
        console.print()
        console.print(result_panel(result, title))
    else:
        # Plain text output
        console.print(f"\n[bold green]{title}:[/bold green]")
        console.print(Text(result))


def handle_error(error: Exception, debug: bool = False):
    """Handle and display errors with appropriate formatting."""
    if debug:
        console.print("\n[bold red]Debug Error Details:[/bold red]")
        console.print_exception()
    else:
        console.print("\n[bold red]Error:[/bold red]", Text(str(error)))
        console.print("[dim]Use --debug for more details[/dim]")


if __name__ == "__main__":
    app()
