"""
pagepilot/utils/cli_utils.py

Utility functions for CLI argument parsing.
"""

import sys
from argparse import ArgumentParser

from rich.console import Console

from pagepilot.config import Config
from pagepilot.data_models.llms.vendors import DEFAULT_LLM_MODEL, LLMModel, model_choices, parse_model
from pagepilot.storage.abstract_storage import JsonFileKeyValueStorage


def add_model_argument(parser: ArgumentParser) -> None:
    """
    Add the --model argument to an ArgumentParser.

    Args:
        parser: The ArgumentParser to add the argument to
    """
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_LLM_MODEL.value,
        help=f"LLM model to use (default: {DEFAULT_LLM_MODEL}). Options: {', '.join(model_choices())}",
    )


def add_storage_argument(parser: ArgumentParser) -> None:
    """Add the --storage-path argument (settings and favorites file)."""
    parser.add_argument(
        "--storage-path",
        type=str,
        default=Config.STORAGE_PATH,
        help=f"JSON file holding settings and code favorites (default: {Config.STORAGE_PATH})",
    )


def add_remote_debugging_argument(parser: ArgumentParser) -> None:
    """Add the --remote-debugging-address argument (Chrome DevTools endpoint)."""
    parser.add_argument(
        "--remote-debugging-address",
        type=str,
        default=Config.REMOTE_DEBUGGING_ADDRESS,
        help=f"Chrome remote debugging address (default: {Config.REMOTE_DEBUGGING_ADDRESS})",
    )


def resolve_model(model_str: str, console: Console) -> LLMModel:
    """
    Resolve a model string to an LLMModel enum value.

    Args:
        model_str: The model string to resolve (e.g., "gpt-5.1")
        console: Rich Console instance for error output

    Returns:
        The resolved LLMModel enum value

    Exits with error if the model string is invalid.
    """
    try:
        return parse_model(model_str)
    except ValueError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)


def open_storage(storage_path: str) -> JsonFileKeyValueStorage:
    """Open the JSON storage file (created on first write)."""
    return JsonFileKeyValueStorage(storage_path)
