"""
pagepilot/agents/task_classifier.py

Lexical classifier deciding whether a task is a self-contained, in-page
JavaScript task that can skip the planner.

A miss only costs one extra planning pass, while a false hit removes the
planner from a task that may need decomposition, so every rule here leans
towards returning False.
"""

import re

from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


_JS = r"(?:javascript|js)"
_EXEC_VERB = r"(?:use|using|run|running|execute|executing|inject|injecting|evaluate|evaluating)"

# Code embedded in the task text itself. These are not vetoed.
_FENCED_BLOCK_RE = re.compile(r"```")
_FUNCTION_DECLARATION_RE = re.compile(r"\bfunction\b\s*[\w$]*\s*\([\w$,\s]*\)\s*\{")
_ARROW_FUNCTION_RE = re.compile(r"(?:\)|[\w$])\s*=>")

# Intent phrases ("use JS to ...", "run a script on the page").
_JS_INTENT_RE = re.compile(rf"\b{_EXEC_VERB}\b(?:\s+\w+){{0,2}}?\s+{_JS}\b", re.IGNORECASE)
_CODE_ON_PAGE_RE = re.compile(
    rf"\b{_EXEC_VERB}\b(?:\s+\w+){{0,3}}?\s+(?:code|script|snippet)\b[^.?!\n]{{0,40}}?"
    r"\b(?:on|in|against)\s+(?:the\s+|this\s+|current\s+)?(?:page|dom|document|site|tab|console)\b",
    re.IGNORECASE,
)
_DOM_API_RE = re.compile(
    r"(?:\bdocument\.[a-z]\w*|\bwindow\.[a-z]\w*|queryselector(?:all)?\s*\(|getelementbyid\s*\("
    r"|getelementsby\w+\s*\(|\.style\.\w+|\.classlist\.\w+)",
    re.IGNORECASE,
)
# A DOM reference alone ("explain how document.querySelector works") is not a
# request to run anything; it needs a verb acting on it or a statement form.
_DOM_ACTION_VERB_RE = re.compile(
    rf"\b(?:{_EXEC_VERB}|set|setting|change|changing|call|calling|apply|modify|toggle|remove|hide)\b",
    re.IGNORECASE,
)
_DOM_STATEMENT_RE = re.compile(r"\b(?:document|window)\.[\w.]+\s*(?:=(?!=)|\()")
_PAGE_TARGET_RE = re.compile(
    r"\b(?:page|document|dom|body|elements?|background|styles?|css|colou?rs?|fonts?|buttons?|divs?"
    r"|selectors?|visibility|hide|show|hidden|visible|tab|site|website|links?|images?)\b",
    re.IGNORECASE,
)

# Vetoes for the intent phrases.
_MULTI_STEP_RE = re.compile(
    r"\b(?:then|after|afterwards|finally|search\s+for|look\s+up|navigate\s+to|go\s+to|visit|browse"
    r"|log(?:ging)?\s*in(?:to)?|sign(?:ing)?\s*in(?:to)?|research|compare|find|summari[sz]e|book|buy"
    r"|purchase|download|fill\s+out|submit|open|read|reply|respond|write|compose|send)\b",
    re.IGNORECASE,
)
_INCIDENTAL_MENTION_RE = re.compile(
    r"\b(?:tutorials?|frameworks?|courses?|librar(?:y|ies)|learn(?:ing)?|documentation|docs|jobs?"
    r"|developers?|history\s+of|articles?|books?"
    r"|blog|posts?|essays?|emails?|explain(?:s|ing)?)\b",
    re.IGNORECASE,
)
_QUESTION_RE = re.compile(
    r"^\s*(?:what|why|how|explain|is|are|does|do|can|could|should|which|who|when)\b",
    re.IGNORECASE,
)


def _contains_code(task: str) -> bool:
    """Whether the task text carries executable code."""
    return bool(
        _FENCED_BLOCK_RE.search(task)
        or _FUNCTION_DECLARATION_RE.search(task)
        or _ARROW_FUNCTION_RE.search(task)
    )


def _has_script_intent(task: str) -> bool:
    """Whether the task explicitly asks for script execution against the page."""
    if _CODE_ON_PAGE_RE.search(task):
        return True
    if _DOM_API_RE.search(task) and (_DOM_ACTION_VERB_RE.search(task) or _DOM_STATEMENT_RE.search(task)):
        return True
    return bool(_JS_INTENT_RE.search(task) and _PAGE_TARGET_RE.search(task))


def _is_vetoed(task: str) -> bool:
    """Whether the task reads as multi-step, incidental, or a question."""
    stripped = task.strip()
    return bool(
        stripped.endswith("?")
        or _QUESTION_RE.search(stripped)
        or _MULTI_STEP_RE.search(stripped)
        or _INCIDENTAL_MENTION_RE.search(stripped)
    )


def is_client_side_js_task(task: str) -> bool:
    """
    Decide whether a task is a self-contained client-side JavaScript task.

    Pure and deterministic; never raises. Anything ambiguous is classified
    as not-JS.

    Args:
        task: The task text as typed by the user.

    Returns:
        True if the task contains code, or explicitly asks for script
        execution on the page without multi-step or incidental-mention cues.
    """
    if not isinstance(task, str) or not task.strip():
        return False

    if _contains_code(task):
        logger.debug("Task classified as client-side JS (contains code)")
        return True

    if _has_script_intent(task) and not _is_vetoed(task):
        logger.debug("Task classified as client-side JS (script intent)")
        return True

    return False
