"""Turn a validated view submission into exactly one Jira issue."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Protocol, Sequence

from slack_sdk.errors import SlackApiError

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.envelopes import InteractionCallback
from slack_jira_bot.handlers import HandlerResult, MarshalingError, marshal_response
from slack_jira_bot.jira import FilingError, IssueFiler, TicketReference

from .ledger import FAILED, FILED, SubmissionLedger, SubmissionRecord
from .templates import IssueTemplate, TemplateRenderError
from .views import BLOCK_ID_TITLE, error_view, pending_view, ticket_view, view_submission_update


class ViewUpdater(Protocol):
    def update_view(
        self,
        *,
        view_id: str,
        view: Mapping[str, Any],
        view_hash: str | None = None,
    ) -> Mapping[str, Any]:
        ...


@dataclass(frozen=True)
class JiraIssueParameters:
    """How one flow turns its fields into an issue."""

    identifier: str
    issue_type: str
    template: IssueTemplate
    fields: Sequence[str]
    title_field: str = BLOCK_ID_TITLE


@dataclass(frozen=True)
class RenderedIssue:
    title: str
    body: str
    issue_type: str


def render_issue(parameters: JiraIssueParameters, values: Mapping[str, str]) -> RenderedIssue:
    """Render the title and body for a submission.

    Declared fields missing from *values* render as empty strings.
    """

    data: Dict[str, str] = {name: "" for name in parameters.fields}
    data.update(values)
    title = data.get(parameters.title_field, "").strip()
    if not title:
        raise TemplateRenderError(f"Field '{parameters.title_field}' is required for the issue title")
    return RenderedIssue(
        title=title,
        body=parameters.template.render(data),
        issue_type=parameters.issue_type,
    )


class IssueFilingHandler:
    """Always claims a view submission, files it in the background and reports back.

    The acknowledgement payload swaps the modal for a "filing" notice right
    away; the tracker call then runs on the task runner and the modal is
    overwritten with either the ticket or a failure notice. Submissions are
    reserved in the ledger before anything is scheduled, so a redelivered
    callback is answered from the ledger and never reaches the tracker.
    """

    def __init__(
        self,
        parameters: JiraIssueParameters,
        *,
        filer: IssueFiler,
        updater: ViewUpdater,
        runner: TaskRunner,
        ledger: SubmissionLedger,
    ) -> None:
        self.name = f"{parameters.identifier}.file"
        self._parameters = parameters
        self._filer = filer
        self._updater = updater
        self._runner = runner
        self._ledger = ledger

    def handle(self, callback: InteractionCallback, logger: Any) -> HandlerResult:
        key = callback.submission_key
        log = logger.bind(handler=self.name, view_id=callback.view_id, user_id=callback.user_id)

        previous = self._ledger.claim(key)
        if previous is not None:
            log.info("duplicate_submission_ignored", status=previous.status)
            return self._respond(self._view_for(previous), log)

        try:
            issue = render_issue(self._parameters, callback.field_values)
        except TemplateRenderError as exc:
            log.error("issue_render_failed", error=str(exc))
            self._ledger.fail(key, str(exc))
            return self._respond(error_view("preparing your issue", exc), log)

        task = self._runner.submit(self.file, callback, issue, log)
        return self._respond(pending_view(), log, task=task)

    def file(self, callback: InteractionCallback, issue: RenderedIssue, log: Any) -> TicketReference | None:
        """Make the single tracker call for *callback* and report the outcome in its view."""

        key = callback.submission_key
        try:
            ticket = self._filer.file(issue.issue_type, issue.title, issue.body)
        except FilingError as exc:
            log.error("filing_failed", issue_type=issue.issue_type, error=str(exc))
            self._ledger.fail(key, str(exc))
            self._overwrite(callback, error_view("filing your issue", exc), log)
            return None
        except Exception as exc:
            log.exception("filing_crashed", issue_type=issue.issue_type)
            self._ledger.fail(key, str(exc))
            self._overwrite(callback, error_view("filing your issue", "internal error"), log)
            raise

        self._ledger.complete(key, ticket)
        log.info("issue_filed", issue_type=issue.issue_type, ticket=ticket.key)
        self._overwrite(callback, ticket_view(ticket), log)
        return ticket

    def _view_for(self, record: SubmissionRecord) -> Dict[str, Any]:
        if record.status == FILED and record.ticket is not None:
            return ticket_view(record.ticket)
        if record.status == FAILED:
            return error_view("filing your issue", record.error or "unknown error")
        return pending_view()

    def _overwrite(self, callback: InteractionCallback, view: Dict[str, Any], log: Any) -> None:
        # no hash: the filing result always wins over whatever the modal shows
        try:
            self._updater.update_view(view_id=callback.view_id, view=view)
        except SlackApiError as exc:
            status_code = getattr(exc.response, "status_code", None) if getattr(exc, "response", None) else None
            error_code = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
            log.error("view_update_failed", error=error_code, status_code=status_code)

    def _respond(self, view: Dict[str, Any], log: Any, *, task: Future | None = None) -> HandlerResult:
        try:
            payload = marshal_response(view_submission_update(view))
        except MarshalingError as exc:
            log.error("filing_response_marshal_failed", error=str(exc))
            return HandlerResult(handled=True, error=exc, task=task)
        return HandlerResult(handled=True, response_payload=payload, task=task)


def to_jira_issue(
    parameters: JiraIssueParameters,
    *,
    filer: IssueFiler,
    updater: ViewUpdater,
    runner: TaskRunner,
    ledger: SubmissionLedger,
) -> IssueFilingHandler:
    return IssueFilingHandler(parameters, filer=filer, updater=updater, runner=runner, ledger=ledger)
