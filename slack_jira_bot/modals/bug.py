"""The "File a Bug" modal."""

from __future__ import annotations

from typing import Any, Dict

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.envelopes import VIEW_SUBMISSION
from slack_jira_bot.handlers import MultiHandler
from slack_jira_bot.jira import ISSUE_TYPE_BUG, IssueFiler

from .filing import JiraIssueParameters, ViewUpdater, to_jira_issue
from .flows import Flow, for_view
from .ledger import SubmissionLedger
from .templates import IssueTemplate
from .validation import require_fields, require_when
from .views import BLOCK_ID_TITLE

IDENTIFIER = "bug"

BLOCK_ID_CATEGORY = "category"
BLOCK_ID_OTHER = "category_free_text_optional"
BLOCK_ID_SYMPTOM = "symptom"
BLOCK_ID_EXPECTED = "expected"

CATEGORY_SELECT = f"{BLOCK_ID_CATEGORY}_static_select"

COMPONENT_AI = "Assisted Installer"
COMPONENT_UI = "MGMT UI"
COMPONENT_SNO = "SNO"
COMPONENT_OTHER = "Other"

OTHER_REQUIRED_MESSAGE = "Provide a description of the other component."
TITLE_REQUIRED_MESSAGE = "Provide a title for this bug."
SYMPTOM_REQUIRED_MESSAGE = "Describe the incorrect behavior you noticed."
EXPECTED_REQUIRED_MESSAGE = "Describe the behavior you expected instead."

TEMPLATE = """h3. Symptomatic Behavior
{{ symptom }}

h3. Expected Behavior
{{ expected }}

h3. Category
{% if category_static_select == "Other" %}Other: {{ category_free_text_optional }}{% else %}{{ category_static_select }}{% endif %}"""


def _plain(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text}


def _text_input(block_id: str, label: str, *, multiline: bool = False, optional: bool = False) -> Dict[str, Any]:
    element: Dict[str, Any] = {"type": "plain_text_input", "action_id": block_id}
    if multiline:
        element["multiline"] = True
    return {
        "type": "input",
        "block_id": block_id,
        "optional": optional,
        "label": _plain(label),
        "element": element,
    }


def view() -> Dict[str, Any]:
    """The modal for submitting a new bug."""

    options = [
        {"text": _plain(component), "value": component}
        for component in (COMPONENT_AI, COMPONENT_UI, COMPONENT_SNO, COMPONENT_OTHER)
    ]
    return {
        "type": "modal",
        "callback_id": IDENTIFIER,
        "title": _plain("File a Bug"),
        "close": _plain("Cancel"),
        "submit": _plain("Submit"),
        "blocks": [
            {
                "type": "section",
                "text": _plain("Use this form to report a bug in the platform or its infrastructure."),
            },
            _text_input(BLOCK_ID_TITLE, "Provide a title for this bug:"),
            {
                "type": "input",
                "block_id": BLOCK_ID_CATEGORY,
                "label": _plain("What component is affected?"),
                "element": {
                    "type": "static_select",
                    "action_id": BLOCK_ID_CATEGORY,
                    "placeholder": _plain("Select a category..."),
                    "options": options,
                },
            },
            _text_input(BLOCK_ID_OTHER, "If other, what best describes the bugged component?", optional=True),
            {"type": "divider"},
            _text_input(BLOCK_ID_SYMPTOM, "What incorrect behavior did you notice?", multiline=True),
            _text_input(BLOCK_ID_EXPECTED, "What behavior did you expect instead?", multiline=True),
        ],
    }


def issue_parameters() -> JiraIssueParameters:
    return JiraIssueParameters(
        identifier=IDENTIFIER,
        issue_type=ISSUE_TYPE_BUG,
        template=IssueTemplate(IDENTIFIER, TEMPLATE),
        fields=[BLOCK_ID_TITLE, CATEGORY_SELECT, BLOCK_ID_OTHER, BLOCK_ID_SYMPTOM, BLOCK_ID_EXPECTED],
    )


def required_fields_handler():
    return require_fields(
        f"{IDENTIFIER}.required",
        {
            BLOCK_ID_TITLE: TITLE_REQUIRED_MESSAGE,
            BLOCK_ID_SYMPTOM: SYMPTOM_REQUIRED_MESSAGE,
            BLOCK_ID_EXPECTED: EXPECTED_REQUIRED_MESSAGE,
        },
    )


def validate_submission_handler():
    # someone picking "Other" has to say what the component is
    return require_when(
        f"{IDENTIFIER}.validate",
        trigger_field=CATEGORY_SELECT,
        trigger_value=COMPONENT_OTHER,
        required_field=BLOCK_ID_OTHER,
        message=OTHER_REQUIRED_MESSAGE,
    )


def register(
    *,
    filer: IssueFiler,
    updater: ViewUpdater,
    runner: TaskRunner,
    ledger: SubmissionLedger,
) -> Flow:
    """Create the registration entry for the bug form."""

    return for_view(IDENTIFIER, view()).with_follow_ups(
        {
            VIEW_SUBMISSION: MultiHandler(
                required_fields_handler(),
                validate_submission_handler(),
                to_jira_issue(issue_parameters(), filer=filer, updater=updater, runner=runner, ledger=ledger),
            ),
        }
    )
