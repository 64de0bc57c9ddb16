"""
Chat-style rendering for assistant replies.

Content uses bold markers and bullet glyphs for downstream chat
rendering. Failure replies pick a random headline but always keep the
same structure: headline, what went wrong, then a "Try:" list.
"""

import random
from datetime import datetime
from typing import Any, List, Optional, Sequence

FAILURE_HEADLINES = (
    "😕 Sorry, I couldn't complete that.",
    "⚠️ That request didn't go through.",
    "🙈 Oops, something went wrong on my side.",
    "🔧 I hit a snag while working on that.",
)

DEFAULT_SUGGESTIONS = (
    "Try again in a moment",
    "Rephrase the request with a task ID, e.g. \"status of task #12\"",
)


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "No due date"
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def display_name(user: Any) -> str:
    return f"{getattr(user, 'first_name', '') or ''} {getattr(user, 'last_name', '') or ''}".strip()


def mask_email(email: Optional[str]) -> str:
    if not email or "@" not in email:
        return "hidden"
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def task_line(task: Any, status: Any = None, with_assignees: bool = True) -> str:
    """🟡 **title** with a └ summary line."""
    status = status if status is not None else task.status
    parts = []
    if with_assignees:
        parts.append(f"👤 {', '.join(display_name(u) for u in task.users) or 'Unassigned'}")
    parts.extend([
        f"📊 {status.title if status else 'Unknown'}",
        f"🎯 {task.priority.title if task.priority else 'Medium'}",
        f"📁 {task.project.title if task.project else 'No Project'}",
        f"🗓️ {format_date(task.end_date)}",
    ])
    return f"🟡 **{task.title}** (#{task.id})\n   └ " + " | ".join(parts)


def bullet_list(lines: Sequence[str]) -> str:
    return "\n".join(f"• {line}" for line in lines)


def tip(text: str) -> str:
    return f"💡 {text}"


def friendly_failure(
    what: str,
    suggestions: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Headline, plain description of the failure, then suggestions."""
    chooser = rng or random
    headline = chooser.choice(FAILURE_HEADLINES)
    tries: List[str] = list(suggestions or DEFAULT_SUGGESTIONS)
    return f"{headline}\n\n{what}\n\n**Try:**\n{bullet_list(tries)}"
