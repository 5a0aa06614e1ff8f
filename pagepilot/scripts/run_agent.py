"""
pagepilot/scripts/run_agent.py

Run one task against a Chrome tab and print the transcript as it grows.

Chrome must be started with remote debugging enabled, e.g.
    google-chrome --remote-debugging-port=9222

Usage:
    pagepilot-run "Summarize the top story on this page"
    pagepilot-run --model claude-sonnet-4-5 --fast-js "run javascript to hide all images on this page"
"""

import argparse
import asyncio
import logging
import signal
import sys

from rich.console import Console

from pagepilot.agents.executor import ExecutorConfig, TaskExecutor
from pagepilot.agents.navigator import LLMNavigator
from pagepilot.agents.planner import LLMPlanner
from pagepilot.agents.transcript import Transcript
from pagepilot.browser.abstract_page import AbstractBrowserPage
from pagepilot.browser.cdp_page import CDPBrowserPage
from pagepilot.config import Config
from pagepilot.data_models.llms.vendors import LLMModel, LLMVendor
from pagepilot.data_models.messages import Actor, Message
from pagepilot.data_models.orchestration import ExecutionResult, ExecutionState
from pagepilot.data_models.settings import GeneralSettings
from pagepilot.llms.llm_client import LLMClient
from pagepilot.panels.message_view import build_message_view
from pagepilot.storage.settings_storage import GeneralSettingsStorage
from pagepilot.utils.cli_utils import (
    add_model_argument,
    add_remote_debugging_argument,
    add_storage_argument,
    open_storage,
    resolve_model,
)
from pagepilot.utils.logger import set_log_level

_ACTOR_STYLES: dict[Actor, str] = {
    Actor.USER: "bold cyan",
    Actor.PLANNER: "bold magenta",
    Actor.NAVIGATOR: "bold green",
    Actor.SYSTEM: "bold yellow",
}


def build_executor(
    task: str,
    llm_model: LLMModel,
    page: AbstractBrowserPage,
    settings: GeneralSettings,
    validate_output: bool = False,
) -> tuple[TaskExecutor, Transcript]:
    """Wire a transcript, an LLM planner and navigator and an executor for one task."""
    transcript = Transcript()
    transcript.add_message(Actor.USER, task)
    llm_client = LLMClient(llm_model)

    executor: TaskExecutor | None = None
    navigator = LLMNavigator(
        llm_client=llm_client,
        page=page,
        transcript=transcript,
        settings=settings,
        should_stop=lambda: executor is not None and executor.is_cancelled,
    )
    executor = TaskExecutor(
        tasks=[task],
        settings=settings,
        navigator=navigator,
        planner=LLMPlanner(llm_client=llm_client, transcript=transcript),
        config=ExecutorConfig.from_settings(settings, validate_output=validate_output),
    )
    return executor, transcript


def print_message(console: Console, message: Message) -> None:
    view = build_message_view(message)
    style = _ACTOR_STYLES.get(view.actor, "bold")
    console.print(f"[dim]{view.timestamp_label}[/dim] [{style}]{view.actor.value}[/{style}]: ", end="")
    console.print(view.display_text, markup=False, highlight=False)
    if view.code:
        console.print("  [dim]executed code:[/dim]")
        console.print(view.code, markup=False, highlight=False, style="dim")


async def run(args: argparse.Namespace, llm_model: LLMModel, console: Console) -> ExecutionResult:
    backend = open_storage(args.storage_path)
    settings_storage = GeneralSettingsStorage(backend)
    settings = await settings_storage.get_settings()

    overrides = {
        key: value
        for key, value in (
            ("allow_code_generation", args.allow_code or args.fast_js or None),
            ("fast_js_mode", args.fast_js or None),
            ("max_steps", args.max_steps),
        )
        if value is not None
    }
    if overrides:
        settings = GeneralSettings.model_validate({**settings.model_dump(), **overrides})

    page = await asyncio.to_thread(CDPBrowserPage.connect, args.remote_debugging_address)
    try:
        executor, transcript = build_executor(
            task=args.task,
            llm_model=llm_model,
            page=page,
            settings=settings,
            validate_output=args.validate_output,
        )
        for message in transcript.messages:
            print_message(console, message)
        transcript.observe(lambda message: print_message(console, message))

        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, executor.cancel)
        except NotImplementedError:
            pass  # Windows: Ctrl-C interrupts instead of cancelling

        return await executor.run()
    finally:
        page.close()


def main() -> None:
    """Entry point for pagepilot-run."""
    parser = argparse.ArgumentParser(description="Run a browser task with the planner/navigator agents")
    parser.add_argument("task", type=str, help="Task for the agent")
    add_model_argument(parser)
    add_storage_argument(parser)
    add_remote_debugging_argument(parser)
    parser.add_argument("--allow-code", action="store_true", help="Allow in-page code execution for this run")
    parser.add_argument("--fast-js", action="store_true", help="Enable fast JS mode (implies --allow-code)")
    parser.add_argument("--max-steps", type=int, default=None, help="Override the step ceiling")
    parser.add_argument(
        "--validate-output",
        action="store_true",
        help="Confirm the navigator's 'done' with a planning pass before finishing",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every step")
    args = parser.parse_args()

    console = Console()
    if args.quiet:
        set_log_level(logging.WARNING)
    elif args.verbose:
        set_log_level(logging.DEBUG)

    llm_model = resolve_model(args.model, console)
    if llm_model.vendor == LLMVendor.OPENAI and not Config.OPENAI_API_KEY:
        console.print("[bold red]Error: OPENAI_API_KEY environment variable is not set[/bold red]")
        sys.exit(1)
    if llm_model.vendor == LLMVendor.ANTHROPIC and not Config.ANTHROPIC_API_KEY:
        console.print("[bold red]Error: ANTHROPIC_API_KEY environment variable is not set[/bold red]")
        sys.exit(1)

    console.print(f"[dim]Model: {llm_model.value}[/dim]")
    console.print()

    try:
        result = asyncio.run(run(args, llm_model, console))
    except Exception as e:
        console.print(f"[bold red]Fatal error: {e}[/bold red]")
        sys.exit(1)

    console.print()
    if result.state == ExecutionState.COMPLETED:
        console.print(f"[green]✓ Completed in {result.steps} step(s)[/green]")
    elif result.failure is not None:
        console.print(f"[bold red]{result.failure.to_exception()}[/bold red]")
        sys.exit(1)
    else:
        console.print(f"[yellow]Stopped: {result.state.value} after {result.steps} step(s)[/yellow]")


if __name__ == "__main__":
    main()
