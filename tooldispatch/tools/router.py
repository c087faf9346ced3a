"""Rule-based meta-query router — substring checks for catalogue questions.
Anything it can't match falls through to the model planner.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

LIST_SERVICES = "list_services"
LIST_TOOLS = "list_tools"

_ENUMERATION_WORDS = ("list", "available", "what are")


@dataclass
class RouteMatch:
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)


def _asks_to_enumerate(lower: str, noun: str) -> bool:
    return noun in lower and any(w in lower for w in _ENUMERATION_WORDS)


def is_list_services_query(text: str) -> bool:
    return _asks_to_enumerate(text.lower(), "service")


def is_list_tools_query(text: str) -> bool:
    return _asks_to_enumerate(text.lower(), "tool")


def extract_service_name(text: str, known_services: Iterable[str]) -> Optional[str]:
    """Return the first known service name contained in ``text``.

    Longer names are tried first so "github" wins over "git".
    """
    lower = text.lower()
    candidates = sorted({s.lower() for s in known_services if s}, key=lambda s: (-len(s), s))
    for name in candidates:
        if name in lower:
            return name
    return None


def route(text: str, known_services: Iterable[str] = ()) -> Optional[RouteMatch]:
    """Classify text as a services query, a tools query, or None."""
    text = text.strip()
    if is_list_services_query(text):
        logger.info(f"Router matched: '{text}' -> {LIST_SERVICES}")
        return RouteMatch(tool=LIST_SERVICES)
    if is_list_tools_query(text):
        service = extract_service_name(text, known_services)
        args = {"name": service} if service else {}
        logger.info(f"Router matched: '{text}' -> {LIST_TOOLS}({args})")
        return RouteMatch(tool=LIST_TOOLS, args=args)
    return None
