"""
pagepilot/utils/code_provenance.py

Carries the exact JavaScript an action ran through the free-text transcript.

Every outcome message of the execute_code action (success, failure and
unexpected error) ends with an executed-code block:

    Code execution failed: ReferenceError: foo is not defined
    <executed_code>() => { foo(); }</executed_code>

The newline before the start marker is the block's separator and belongs to
the block. Marker text occurring inside the outcome text or the code is
escaped by appending "_" to it (`<executed_code_>`), so the markers written
by the encoder are the only ones in the message and the code decodes back
verbatim whatever either part contains.

The UI strips blocks for display and decodes the first one to offer "save
as favorite". Decoding is best-effort and returns None on a miss; callers
fall back to is_code_execution_outcome() for messages without a block.
"""

import re

from pagepilot.data_models.code_execution import CodeExecutionResult

EXECUTED_CODE_START: str = "<executed_code>"
EXECUTED_CODE_END: str = "</executed_code>"

# Outcome phrasings produced by the execute_code action.
CODE_SUCCESS_PHRASE: str = "Code executed"
CODE_FAILURE_PHRASE: str = "Code execution failed"
CODE_ERROR_PHRASE: str = "Error executing code"

# Every marker-like token gets one "_" appended when encoded, and every
# token followed by "_" loses one when decoded.
_MARKER_TOKEN_RE = re.compile(r"</?executed_code")
_ESCAPED_MARKER_TOKEN_RE = re.compile(r"(</?executed_code)_")

# Non-greedy: escaped code never contains the end marker, so the first end
# marker after a start marker closes the block.
_BLOCK_RE = re.compile(
    re.escape(EXECUTED_CODE_START) + r"(.*?)" + re.escape(EXECUTED_CODE_END),
    re.DOTALL,
)
_BLOCK_WITH_SEPARATOR_RE = re.compile(r"\n?" + _BLOCK_RE.pattern, re.DOTALL)


def _escape_markers(text: str) -> str:
    return _MARKER_TOKEN_RE.sub(lambda match: match.group(0) + "_", text)


def _unescape_markers(text: str) -> str:
    return _ESCAPED_MARKER_TOKEN_RE.sub(r"\1", text)


## Codec

def encode_executed_code(outcome_text: str, code: str) -> str:
    """
    Append an executed-code block to an outcome message.

    Args:
        outcome_text: Human-readable outcome text. Marker text inside it is
            escaped so it can never open or close a block.
        code: The exact source that was run.

    Returns:
        The outcome text followed by the separator newline and the delimited code block.
    """
    return f"{_escape_markers(outcome_text)}\n{EXECUTED_CODE_START}{_escape_markers(code)}{EXECUTED_CODE_END}"


def strip_executed_code(content: str) -> str:
    """
    Remove every complete executed-code block, each with its separator newline.

    Idempotent: blocks are removed until none is left, so the result never
    contains a complete block. An unterminated start marker is left in
    place, since it is not a block.

    Args:
        content: Stored message content.

    Returns:
        The content as it should be displayed.
    """
    while True:
        stripped = _BLOCK_WITH_SEPARATOR_RE.sub("", content)
        if stripped == content:
            return stripped
        content = stripped


def decode_executed_code(content: str) -> str | None:
    """
    Extract the code from the first complete executed-code block.

    Args:
        content: Stored message content.

    Returns:
        The code verbatim, or None when there is no complete block.
    """
    match = _BLOCK_RE.search(content)
    if match is None:
        return None
    return _unescape_markers(match.group(1))


def is_code_execution_outcome(content: str) -> bool:
    """
    Check whether a message reports an execute_code outcome of any kind.

    Covers the success, failure and unexpected-error phrasings, so a failed
    run can still be offered for saving and fixing.
    """
    text = strip_executed_code(content)
    return (
        CODE_SUCCESS_PHRASE in text
        or CODE_FAILURE_PHRASE in text
        or CODE_ERROR_PHRASE in text
    )


## Outcome formatting (used by the execute_code action)

def format_code_success(code: str, output: str | None = None) -> str:
    """Success branch: `Code executed successfully[: output]` plus the code block."""
    text = f"{CODE_SUCCESS_PHRASE} successfully"
    if output:
        text = f"{text}: {output}"
    return encode_executed_code(text, code)


def format_code_failure(code: str, error: str | None = None) -> str:
    """Failure branch: the code ran but reported (or threw) an error."""
    return encode_executed_code(f"{CODE_FAILURE_PHRASE}: {error or 'unknown error'}", code)


def format_code_error(code: str, error: BaseException | str) -> str:
    """Unexpected-error branch: the code could not be run at all."""
    return encode_executed_code(f"{CODE_ERROR_PHRASE}: {error}", code)


def format_code_execution_result(result: CodeExecutionResult, code: str) -> str:
    """
    Format a page-reported result into a transcript message.

    Args:
        result: What the page reported.
        code: The source that was run.

    Returns:
        The encoded outcome message for the success or failure branch.
    """
    if result.success:
        return format_code_success(code, result.output)
    return format_code_failure(code, result.error)
