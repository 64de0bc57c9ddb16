"""
Smart Task assistant entrypoint.

handle() resolves the request to an action (explicit -> pattern ->
oracle), executes it and always returns an ActionResult: the whole
request is bounded by assistant_timeout_seconds and every failure is
turned into friendly content.
"""

import asyncio
import logging
import random
from typing import Optional

from config import settings
from ..exceptions import VendorConnectError
from ..services.visibility import Principal
from .executor import ActionExecutor, ActionResult
from .intent import (
    AssistantAction,
    AssistantRequest,
    ExplicitActionMatcher,
    IntentResolver,
    OracleMatcher,
    ParsedIntent,
    PatternMatcher,
)
from .oracle import AssistantOracle, get_oracle
from .responses import bullet_list, friendly_failure, tip

logger = logging.getLogger(__name__)

AVAILABLE_ACTIONS = (
    "Create a task: \"Create a task for Sarah to review the GHL report\"",
    "See someone's work: \"What tasks does Sarah have?\"",
    "List tasks: \"Show me active tasks\"",
    "Check a task: \"What's the status of task #12?\"",
    "Read updates: \"Any updates on task 12?\"",
    "Comment: \"Comment on #12: client approved\"",
    "Attach a link: \"Attach https://... to task 12\"",
    "Change status or priority: \"Mark #12 as completed\", \"Set priority of #12 to high\"",
    "Delete: \"Delete task #12\"",
    "Team, projects and progress: \"Who is on the team?\", \"List projects\", \"Progress of project Website\"",
    "Overview and search: \"Dashboard\", \"Search for invoice\"",
)


def unresolved_content(raw_text: Optional[str]) -> str:
    """Whatever the oracle said (if anything) plus the static list of actions."""
    head = raw_text.strip() if raw_text and raw_text.strip() else "🤔 I'm not sure what you'd like me to do."
    return f"{head}\n\n**Here's what I can help with:**\n{bullet_list(AVAILABLE_ACTIONS)}"


class SmartTaskAssistant:
    """Resolves and executes one assistant request for a principal."""

    def __init__(
        self,
        executor: ActionExecutor,
        oracle: Optional[AssistantOracle] = None,
        resolver: Optional[IntentResolver] = None,
        timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.executor = executor
        self.resolver = resolver or IntentResolver([
            ExplicitActionMatcher(),
            PatternMatcher(),
            OracleMatcher(oracle or get_oracle()),
        ])
        self.timeout = settings.assistant_timeout_seconds if timeout is None else timeout
        self.rng = rng

    async def handle(self, principal: Principal, request: AssistantRequest) -> ActionResult:
        logger.info(
            f"Smart task request from user {principal.user_id}: action={request.action} "
            f"params={request.params} message={request.message!r}"
        )
        try:
            return await asyncio.wait_for(self._handle(principal, request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Smart task request timed out after {self.timeout}s (user {principal.user_id})")
            return self._failure(
                "The request took too long to finish.",
                504,
                ["Try again in a moment", "Ask for something smaller, e.g. one task instead of a list"],
            )
        except VendorConnectError as e:
            logger.warning(f"Smart task request failed: {e.message}")
            return self._failure(e.message, e.status_code)
        except Exception as e:
            logger.error(f"Unexpected smart task error: {e}", exc_info=True)
            return self._failure("Something unexpected happened while handling your request.", 500)

    async def _handle(self, principal: Principal, request: AssistantRequest) -> ActionResult:
        resolution = await self.resolver.resolve(request)
        if isinstance(resolution, ParsedIntent):
            return await self.executor.execute(principal, resolution)

        logger.info(f"Smart task request unresolved: {resolution.reason}")
        return ActionResult(
            success=True,
            content=unresolved_content(resolution.raw_text),
            data={
                "unresolved": True,
                "available_actions": [a.value for a in AssistantAction],
            },
        )

    def _failure(self, what: str, status_code: int, suggestions=None) -> ActionResult:
        suggestions = suggestions or [
            "Try again in a moment",
            "Use a task ID, e.g. \"status of task #12\"",
        ]
        content = friendly_failure(what, suggestions, rng=self.rng)
        if status_code >= 500:
            content += "\n\n" + tip("If this keeps happening, contact your workspace admin.")
        return ActionResult(
            success=False, content=content, status_code=status_code, message=what
        )
