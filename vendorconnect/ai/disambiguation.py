"""
Disambiguation policy.

When several tasks match a title reference almost equally well, the
assistant answers with a structured "choose one of N" reply instead of
guessing. The policy is stateless: the caller re-issues the request with
the chosen task id.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .matching import ScoredCandidate, TaskMatch
from .responses import display_name, format_date, tip


@dataclass
class Disambiguation:
    """A multi-candidate answer; rendered as HTTP 200 with data.disambiguation = true."""
    query: str
    candidates: List[ScoredCandidate]
    action: Optional[str] = None

    def to_data(self) -> Dict[str, Any]:
        return {
            "disambiguation": True,
            "query": self.query,
            "action": self.action,
            "candidates": [self._candidate(s) for s in self.candidates],
        }

    @staticmethod
    def _candidate(scored: ScoredCandidate) -> Dict[str, Any]:
        task = scored.candidate
        return {
            "id": task.id,
            "title": task.title,
            "match": round(scored.score * 100),
            "assignees": [display_name(u) for u in task.users],
            "status": task.status.title if task.status else None,
            "priority": task.priority.title if task.priority else None,
            "due_date": task.end_date.isoformat() if task.end_date else None,
        }

    def render(self) -> str:
        lines = [f"🤔 **Multiple tasks match \"{self.query}\"** ({len(self.candidates)} found)", ""]
        for number, scored in enumerate(self.candidates, start=1):
            item = self._candidate(scored)
            assignees = ", ".join(item["assignees"]) or "Unassigned"
            lines.append(f"{number}. **{item['title']}** (#{item['id']}, {item['match']}% match)")
            lines.append(
                f"   └ 👤 {assignees} | 📊 {item['status'] or 'Unknown'} | "
                f"🎯 {item['priority'] or 'Medium'} | 🗓️ {format_date(scored.candidate.end_date)}"
            )
        lines.append("")
        lines.append(tip("Reply with the task ID you mean, e.g. \"#12\"."))
        return "\n".join(lines)


class DisambiguationPolicy:
    """Turns a TaskMatch into a single task, a Disambiguation, or nothing."""

    def decide(self, match: TaskMatch, action: Optional[str] = None) -> Union[Any, Disambiguation, None]:
        if not match.found:
            return None
        if match.ambiguous:
            return Disambiguation(query=match.query, candidates=match.candidates, action=action)
        return match.best.candidate
