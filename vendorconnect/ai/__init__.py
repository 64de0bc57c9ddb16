from .intent import AssistantAction, AssistantRequest, IntentResolver, ParsedIntent, Unresolved
from .matching import FuzzyEntityResolver, NameScorer, TaskTitleScorer
from .disambiguation import Disambiguation, DisambiguationPolicy
from .oracle import AssistantOracle, get_oracle
from .executor import ActionExecutor, ActionResult
from .assistant import SmartTaskAssistant

__all__ = [
    "AssistantAction",
    "AssistantRequest",
    "IntentResolver",
    "ParsedIntent",
    "Unresolved",
    "FuzzyEntityResolver",
    "NameScorer",
    "TaskTitleScorer",
    "Disambiguation",
    "DisambiguationPolicy",
    "AssistantOracle",
    "get_oracle",
    "ActionExecutor",
    "ActionResult",
    "SmartTaskAssistant",
]
