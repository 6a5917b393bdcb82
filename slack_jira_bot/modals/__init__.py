"""Modal flows, their registry and the interaction router."""

from __future__ import annotations

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.jira import IssueFiler
from slack_jira_bot.slack_client import SlackClient

from . import bug
from .filing import IssueFilingHandler, JiraIssueParameters, RenderedIssue, render_issue, to_jira_issue
from .flows import DuplicateFlowError, Flow, FlowRegistry, RoutingMissError, for_view
from .ledger import SubmissionLedger
from .router import InteractionRouter
from .templates import IssueTemplate, TemplateRenderError


def for_modals(
    *,
    filer: IssueFiler,
    client: SlackClient,
    runner: TaskRunner,
    ledger: SubmissionLedger,
) -> InteractionRouter:
    """Return the router for every modal flow the bot knows about."""

    registry = FlowRegistry(
        [
            bug.register(filer=filer, updater=client, runner=runner, ledger=ledger),
        ]
    )
    return InteractionRouter(registry, opener=client, runner=runner)


__all__ = [
    "DuplicateFlowError",
    "Flow",
    "FlowRegistry",
    "InteractionRouter",
    "IssueFilingHandler",
    "IssueTemplate",
    "JiraIssueParameters",
    "RenderedIssue",
    "RoutingMissError",
    "SubmissionLedger",
    "TemplateRenderError",
    "for_modals",
    "for_view",
    "render_issue",
    "to_jira_issue",
]
