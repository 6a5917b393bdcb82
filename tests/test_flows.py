"""Tests for the flow registry and interaction router."""

from __future__ import annotations

import pytest
import structlog
from slack_sdk.errors import SlackApiError
from structlog.testing import capture_logs

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.envelopes import (
    BLOCK_ACTIONS,
    INTERACTIVE,
    SHORTCUT,
    VIEW_CLOSED,
    VIEW_SUBMISSION,
    EventEnvelope,
    InteractionCallback,
)
from slack_jira_bot.handlers import UNHANDLED, HandlerResult, PartialHandlerFunc
from slack_jira_bot.modals import (
    DuplicateFlowError,
    Flow,
    FlowRegistry,
    InteractionRouter,
    RoutingMissError,
    for_view,
)


class DummyOpener:
    def __init__(self, *, fail: bool = False):
        self.calls = []
        self.fail = fail

    def open_view(self, *, trigger_id, view):
        self.calls.append((trigger_id, view))
        if self.fail:
            raise SlackApiError("failed", {"ok": False, "error": "expired_trigger_id"})
        return {"ok": True}


@pytest.fixture
def logger():
    return structlog.get_logger()


@pytest.fixture
def runner():
    task_runner = TaskRunner()
    yield task_runner
    task_runner.shutdown(grace_period=1)


def _claiming(name, seen):
    def _handle(callback, _log):
        seen.append((name, callback.interaction_type))
        return HandlerResult(handled=True, response_payload=b"{}")

    return PartialHandlerFunc(name, _handle)


def _callback(interaction_type=VIEW_SUBMISSION, flow="demo", **kwargs):
    return InteractionCallback(interaction_type=interaction_type, flow_identifier=flow, **kwargs)


def test_for_view_embeds_identifier_in_private_metadata():
    flow = for_view("demo", {"type": "modal", "title": {"type": "plain_text", "text": "Demo"}})

    assert flow.identifier == "demo"
    assert flow.initial_view["private_metadata"] == "demo"
    assert dict(flow.follow_ups) == {}


def test_flow_requires_identifier():
    with pytest.raises(ValueError):
        Flow(identifier="", initial_view={})


def test_duplicate_registration_fails_fast():
    registry = FlowRegistry([for_view("demo", {"type": "modal"})])

    with pytest.raises(DuplicateFlowError):
        registry.register(for_view("demo", {"type": "modal"}))


def test_registration_after_seal_is_rejected():
    registry = FlowRegistry()
    registry.seal()

    with pytest.raises(RuntimeError):
        registry.register(for_view("demo", {"type": "modal"}))


def test_render_initial_returns_independent_copy():
    registry = FlowRegistry([for_view("demo", {"type": "modal", "blocks": [{"type": "divider"}]})])

    view = registry.render_initial("demo")
    view["blocks"].append({"type": "section"})

    assert registry.render_initial("demo")["blocks"] == [{"type": "divider"}]
    assert "demo" in registry
    assert registry.identifiers == ["demo"]


def test_render_initial_unknown_flow_is_routing_miss():
    with pytest.raises(RoutingMissError):
        FlowRegistry().render_initial("nope")


def test_unknown_flow_is_claimed_with_routing_miss(logger, runner):
    router = InteractionRouter(FlowRegistry(), opener=DummyOpener(), runner=runner)

    with capture_logs() as logs:
        result = router.route(_callback(flow="stale"), logger)

    assert result.handled is True
    assert isinstance(result.error, RoutingMissError)
    assert result.response_payload is None
    miss = [entry for entry in logs if entry["event"] == "interaction_routing_miss"]
    assert miss and miss[0]["log_level"] == "error"
    assert miss[0]["flow"] == "stale"


def test_follow_up_chain_runs_for_matching_type(logger, runner):
    seen = []
    flow = for_view("demo", {"type": "modal"}).with_follow_ups({VIEW_SUBMISSION: _claiming("submit", seen)})
    router = InteractionRouter(FlowRegistry([flow]), opener=DummyOpener(), runner=runner)

    result = router.route(_callback(VIEW_SUBMISSION), logger)

    assert result == HandlerResult(handled=True, response_payload=b"{}")
    assert seen == [("submit", VIEW_SUBMISSION)]


@pytest.mark.parametrize("interaction_type", [VIEW_CLOSED, BLOCK_ACTIONS])
def test_missing_follow_up_for_type_is_unclaimed(logger, runner, interaction_type):
    seen = []
    flow = for_view("demo", {"type": "modal"}).with_follow_ups({VIEW_SUBMISSION: _claiming("submit", seen)})
    router = InteractionRouter(FlowRegistry([flow]), opener=DummyOpener(), runner=runner)

    result = router.route(_callback(interaction_type), logger)

    assert result is UNHANDLED
    assert seen == []


def test_router_seals_registry(runner):
    registry = FlowRegistry()
    InteractionRouter(registry, opener=DummyOpener(), runner=runner)

    with pytest.raises(RuntimeError):
        registry.register(for_view("late", {"type": "modal"}))


def test_shortcut_opens_initial_view(logger, runner):
    opener = DummyOpener()
    router = InteractionRouter(FlowRegistry([for_view("demo", {"type": "modal"})]), opener=opener, runner=runner)

    result = router.route(_callback(SHORTCUT, trigger_id="T1"), logger)

    assert result.handled is True
    assert result.task.result(timeout=1) is True
    assert opener.calls == [("T1", {"type": "modal", "private_metadata": "demo"})]


def test_shortcut_open_failure_is_logged(logger, runner):
    opener = DummyOpener(fail=True)
    router = InteractionRouter(FlowRegistry([for_view("demo", {"type": "modal"})]), opener=opener, runner=runner)

    with capture_logs() as logs:
        result = router.route(_callback(SHORTCUT, trigger_id="T1"), logger)
        assert result.task.result(timeout=1) is False

    assert any(entry["event"] == "modal_open_failed" for entry in logs)


def test_handle_decodes_envelope(logger, runner):
    seen = []
    flow = for_view("demo", {"type": "modal"}).with_follow_ups({VIEW_SUBMISSION: _claiming("submit", seen)})
    router = InteractionRouter(FlowRegistry([flow]), opener=DummyOpener(), runner=runner)
    envelope = EventEnvelope(
        kind=INTERACTIVE,
        payload={"type": VIEW_SUBMISSION, "user": {"id": "U1"}, "view": {"id": "V1", "private_metadata": "demo"}},
        ack_token="env-1",
    )

    result = router.handle(envelope, logger)

    assert result.handled is True
    assert seen == [("submit", VIEW_SUBMISSION)]
