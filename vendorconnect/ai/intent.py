"""
Intent resolution for the Smart Task assistant.

A request is resolved by an ordered chain of matchers. Each matcher
returns a confident ParsedIntent, an Unresolved, or None for "no
opinion":
1. ExplicitActionMatcher - the caller named a known action
2. PatternMatcher - regex rules over the free-text message
3. OracleMatcher - the hosted language model (last, swappable)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple, Union, Callable

logger = logging.getLogger(__name__)


class AssistantAction(str, Enum):
    """Fixed action vocabulary of the assistant."""

    CREATE_TASK = "create_task"                    # "ask John to update the GHL report"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"                    # "delete task #12"
    GET_USER_TASKS = "get_user_tasks"              # "what tasks does Sarah have?"
    LIST_TASKS = "list_tasks"                      # "show me active tasks"
    GET_TASK_STATUS = "get_task_status"            # "status of task #12"
    GET_TASK_UPDATES = "get_task_updates"          # "any updates on task 12?"
    ADD_TASK_MESSAGE = "add_task_message"          # "comment on #12: client approved"
    ADD_TASK_ATTACHMENT = "add_task_attachment"    # "attach https://... to task 12"
    GET_USERS = "get_users"                        # "who is on the team?"
    GET_PROJECTS = "get_projects"                  # "list projects"
    GET_PROJECT_PROGRESS = "get_project_progress"  # "progress of project Website"
    GET_DASHBOARD = "get_dashboard"                # "dashboard"
    SEARCH_CONTENT = "search_content"              # "search for invoice"
    UPDATE_TASK_STATUS = "update_task_status"      # "mark #12 as completed"
    UPDATE_TASK_PRIORITY = "update_task_priority"  # "set priority of #12 to high"

    @classmethod
    def parse(cls, value: Any) -> Optional["AssistantAction"]:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass
class AssistantRequest:
    message: str = ""
    action: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParsedIntent:
    action: AssistantAction
    params: Dict[str, Any] = field(default_factory=dict)
    source: str = "explicit"


@dataclass
class Unresolved:
    """No matcher was confident. raw_text carries whatever the oracle said."""
    raw_text: Optional[str] = None
    reason: str = "no matcher recognised the request"


Resolution = Union[ParsedIntent, Unresolved]


class ExplicitActionMatcher:
    """Uses the action the caller supplied, when it is in the vocabulary."""

    name = "explicit"

    async def match(self, request: AssistantRequest) -> Optional[Resolution]:
        if not request.action:
            return None
        action = AssistantAction.parse(request.action)
        if action is None:
            logger.info(f"Ignoring unknown explicit action '{request.action}'")
            return None
        return ParsedIntent(action, dict(request.params or {}), source=self.name)


# ==================== PATTERN RULES ====================

_TASK_REF = r"(?:task\s+)?#?(?P<task_id>\d+)"
_NAME = r"(?P<name>[a-z][\w.'-]*)"

RECURRENCE_PATTERNS: Tuple[Tuple[Pattern, str], ...] = (
    (re.compile(r"\b(?:every\s*day|daily)\b", re.I), "daily"),
    (re.compile(r"\b(?:every\s+(?:week|monday|tuesday|wednesday|thursday|friday|saturday|sunday)|weekly)\b", re.I), "weekly"),
    (re.compile(r"\b(?:every\s+month|monthly)\b", re.I), "monthly"),
    (re.compile(r"\b(?:every\s+year|yearly|annually)\b", re.I), "yearly"),
)

STATUS_WORDS = re.compile(r"\b(active|in progress|completed|pending|submitted|archived?|rejected)\b", re.I)


def extract_recurrence(text: str) -> Tuple[str, Optional[str]]:
    """Strip a recurrence phrase from text and return (text, frequency)."""
    for pattern, frequency in RECURRENCE_PATTERNS:
        if pattern.search(text):
            cleaned = pattern.sub("", text)
            return " ".join(cleaned.split()).strip(" ,."), frequency
    return text, None


def _create(match: re.Match) -> Dict[str, Any]:
    title, frequency = extract_recurrence(match.group("title").strip().rstrip("?.!"))
    params: Dict[str, Any] = {"user_name": match.group("name"), "title": title}
    if frequency:
        params.update(is_repeating=True, repeat_frequency=frequency)
    return params


def _list(match: re.Match) -> Dict[str, Any]:
    status = STATUS_WORDS.search(match.string)
    return {"status": status.group(1).lower()} if status else {}


@dataclass(frozen=True)
class PatternRule:
    action: AssistantAction
    pattern: Pattern
    extract: Callable[[re.Match], Dict[str, Any]]


def _rule(action: AssistantAction, regex: str, extract: Callable[[re.Match], Dict[str, Any]]) -> PatternRule:
    return PatternRule(action, re.compile(regex, re.I), extract)


def _task_id(m: re.Match) -> Dict[str, Any]:
    return {"task_id": int(m.group("task_id"))}


PATTERN_RULES: Tuple[PatternRule, ...] = (
    # creation commands are anchored at the start and win over phrases inside the title
    _rule(AssistantAction.CREATE_TASK,
          rf"^(?:please\s+)?(?:create|add|make|assign)\s+(?:a\s+)?(?:new\s+)?task\s+for\s+{_NAME}\s+to\s+(?P<title>.+)$",
          _create),
    _rule(AssistantAction.CREATE_TASK,
          rf"^(?:please\s+)?(?:ask|tell|get|delegate\s+to)\s+{_NAME}\s+to\s+(?P<title>.+)$",
          _create),
    _rule(AssistantAction.UPDATE_TASK_STATUS,
          rf"\bmark\s+{_TASK_REF}\s+as\s+(?P<status>[\w ]+?)[.!]?$",
          lambda m: {**_task_id(m), "status": m.group("status").strip()}),
    _rule(AssistantAction.UPDATE_TASK_PRIORITY,
          rf"\b(?:set|change)\s+(?:the\s+)?priority\s+(?:of|for|on)\s+{_TASK_REF}\s+to\s+(?P<priority>\w+)",
          lambda m: {**_task_id(m), "priority": m.group("priority")}),
    _rule(AssistantAction.DELETE_TASK,
          rf"\b(?:delete|remove)\s+{_TASK_REF}\b",
          _task_id),
    _rule(AssistantAction.ADD_TASK_ATTACHMENT,
          rf"\battach\s+(?P<url>https?://\S+)\s+to\s+{_TASK_REF}",
          lambda m: {**_task_id(m), "url": m.group("url")}),
    _rule(AssistantAction.ADD_TASK_MESSAGE,
          rf"\b(?:comment|note|message)\s+(?:on|to)\s+{_TASK_REF}\s*[:\-]\s*(?P<message>.+)$",
          lambda m: {**_task_id(m), "message": m.group("message").strip()}),
    _rule(AssistantAction.GET_TASK_UPDATES,
          rf"\b(?:updates?|comments?|messages?)\b.*\b(?:on|for)\s+{_TASK_REF}",
          _task_id),
    _rule(AssistantAction.GET_PROJECT_PROGRESS,
          r"\bprogress\s+(?:of|on|for)\s+(?:the\s+)?project\s+(?P<project>.+?)\s*\??$",
          lambda m: {"project": m.group("project").strip()}),
    _rule(AssistantAction.GET_PROJECT_PROGRESS,
          r"\bhow\s+is\s+(?:the\s+)?project\s+(?P<project>.+?)\s+(?:going|doing)\b",
          lambda m: {"project": m.group("project").strip()}),
    _rule(AssistantAction.GET_TASK_STATUS,
          rf"\b(?:status|progress)\b.*?{_TASK_REF}",
          _task_id),
    _rule(AssistantAction.GET_USER_TASKS,
          rf"\b(?:what|which|show|list|get)\b.*\b(?:does|is|has)\s+{_NAME}\s+(?:have|got|working|doing|assigned)",
          lambda m: {"user_name": m.group("name")}),
    _rule(AssistantAction.GET_USER_TASKS,
          rf"\b{_NAME}'s\s+(?:tasks?|work)\b",
          lambda m: {"user_name": m.group("name")}),
    _rule(AssistantAction.GET_USER_TASKS,
          rf"\btasks?\s+(?:for|assigned\s+to)\s+{_NAME}\s*\??$",
          lambda m: {"user_name": m.group("name")}),
    _rule(AssistantAction.GET_PROJECTS,
          r"\b(?:list|show|what|which|get)\b.*\bprojects\b",
          lambda m: {}),
    _rule(AssistantAction.GET_USERS,
          r"\b(?:list|show|who|get)\b.*\b(?:users|team|people|members)\b",
          lambda m: {}),
    _rule(AssistantAction.GET_DASHBOARD,
          r"\b(?:dashboard|overview|summary|stats)\b",
          lambda m: {}),
    _rule(AssistantAction.SEARCH_CONTENT,
          r"^(?:search|look\s+up)\s+(?:for\s+)?(?P<query>.+)$",
          lambda m: {"query": m.group("query").strip().rstrip("?")}),
    _rule(AssistantAction.LIST_TASKS,
          r"\b(?:what|show|list|get|find|any)\b.*\b(?:tasks?|work|assigned)\b",
          _list),
)


class PatternMatcher:
    """Regex rules over the message. First matching rule wins."""

    name = "pattern"

    def __init__(self, rules: Tuple[PatternRule, ...] = PATTERN_RULES):
        self.rules = rules

    async def match(self, request: AssistantRequest) -> Optional[Resolution]:
        message = " ".join((request.message or "").split())
        if not message:
            return None
        for rule in self.rules:
            found = rule.pattern.search(message)
            if found:
                params = rule.extract(found)
                params.update(request.params or {})
                logger.debug(f"Pattern matched {rule.action.value}: {params}")
                return ParsedIntent(rule.action, params, source=self.name)
        return None


class OracleMatcher:
    """Delegates to the language-model oracle. Always the last matcher."""

    name = "oracle"

    def __init__(self, oracle):
        self.oracle = oracle

    async def match(self, request: AssistantRequest) -> Optional[Resolution]:
        if not (request.message or "").strip():
            return None
        return await self.oracle.interpret(request.message)


class IntentResolver:
    """Runs matchers in order; the first ParsedIntent wins."""

    def __init__(self, matchers: List[Any]):
        self.matchers = matchers

    async def resolve(self, request: AssistantRequest) -> Resolution:
        unresolved: Optional[Unresolved] = None
        for matcher in self.matchers:
            result = await matcher.match(request)
            if isinstance(result, ParsedIntent):
                logger.info(f"Resolved '{result.action.value}' via {matcher.name}")
                return result
            if isinstance(result, Unresolved):
                unresolved = result
        return unresolved or Unresolved()
