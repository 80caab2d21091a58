"""Conversation title derivation (keyword heuristic)."""

from assistant_api.core.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TITLE = "New Conversation"
DEFAULT_TITLE = "General Discussion"
MAX_TITLE_LENGTH = 50

TOPIC_KEYWORDS = (
    "help",
    "question",
    "explain",
    "how",
    "what",
    "why",
    "code",
    "programming",
    "design",
    "business",
    "writing",
    "analysis",
    "research",
    "learning",
)

# Checked in order after topic keywords; first matching group wins.
PATTERN_TITLES = (
    (("create", "build", "make"), "Project Creation"),
    (("fix", "debug", "error"), "Problem Solving"),
    (("learn", "teach", "tutorial"), "Learning Session"),
)


def suggest_title(message: str) -> str:
    """Pick a topical title for a message.

    Keywords are matched as substrings of the lower-cased message, in
    keyword-list order (not message order).
    """
    text = message.lower()

    for keyword in TOPIC_KEYWORDS:
        if keyword in text:
            return f"{keyword.capitalize()} Discussion"

    for words, title in PATTERN_TITLES:
        if any(word in text for word in words):
            return title

    return DEFAULT_TITLE


def clean_title(raw: str | None) -> str:
    """Trim, cap at 50 chars and drop one trailing ``.``, ``!`` or ``?``."""
    title = (raw or "").strip() or FALLBACK_TITLE
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    if title[-1] in ".!?":
        title = title[:-1]
    return title or FALLBACK_TITLE


def generate_conversation_title(message: str) -> str:
    """Derive a conversation title; never raises."""
    try:
        return clean_title(suggest_title(message))
    except Exception as e:
        logger.warning("title_generation_failed", error=str(e))
        return FALLBACK_TITLE
