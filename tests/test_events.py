"""Tests for Events API routing and the mention handler."""

from __future__ import annotations

import pytest
import structlog
from slack_sdk.errors import SlackApiError
from structlog.testing import capture_logs

from slack_jira_bot.envelopes import EVENTS_API, EnvelopeDecodeError, EventEnvelope
from slack_jira_bot.events import EventRouter, for_events, mention
from slack_jira_bot.handlers import UNHANDLED, HandlerResult, PartialHandlerFunc
from slack_jira_bot.slack_client import SlackClient


class DummyWebClient:
    def __init__(self, *, fail: bool = False):
        self.calls = []
        self.fail = fail

    def chat_postMessage(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise SlackApiError("failed", {"ok": False, "error": "channel_not_found"})
        return {"ok": True}


def _envelope(event):
    return EventEnvelope(
        kind=EVENTS_API,
        payload={"type": "event_callback", "event_id": "Ev1", "event": event},
        ack_token="env-1",
    )


def _mention(**overrides):
    event = {"type": "app_mention", "user": "U1", "channel": "C1", "text": "<@B1> hi", "ts": "100.1"}
    event.update(overrides)
    return event


@pytest.fixture
def logger():
    return structlog.get_logger()


def test_mention_reply_is_posted_in_thread(logger):
    web = DummyWebClient()
    router = for_events(SlackClient(client=web))

    result = router.route(_envelope(_mention()), logger)

    assert result == HandlerResult(handled=True)
    assert len(web.calls) == 1
    assert web.calls[0]["channel"] == "C1"
    assert web.calls[0]["thread_ts"] == "100.1"
    assert "<@U1>" in web.calls[0]["text"]


def test_mention_inside_thread_replies_to_that_thread(logger):
    web = DummyWebClient()
    router = for_events(SlackClient(client=web))

    router.route(_envelope(_mention(thread_ts="99.0")), logger)

    assert web.calls[0]["thread_ts"] == "99.0"


def test_mention_from_bot_is_claimed_without_reply(logger):
    web = DummyWebClient()
    router = for_events(SlackClient(client=web))

    result = router.route(_envelope(_mention(bot_id="B2")), logger)

    assert result.handled is True
    assert web.calls == []


def test_mention_failure_is_surfaced_on_result(logger):
    web = DummyWebClient(fail=True)
    router = for_events(SlackClient(client=web))

    with capture_logs() as logs:
        result = router.route(_envelope(_mention()), logger)

    assert result.handled is True
    assert isinstance(result.error, SlackApiError)
    events = [entry["event"] for entry in logs]
    assert "mention_reply_failed" in events
    assert "event_handler_failed" in events


def test_unclaimed_event_is_dropped_at_debug(logger):
    web = DummyWebClient()
    router = for_events(SlackClient(client=web))

    with capture_logs() as logs:
        result = router.route(_envelope({"type": "reaction_added", "user": "U1"}), logger)

    assert result is UNHANDLED
    assert web.calls == []
    assert [(entry["event"], entry["log_level"]) for entry in logs] == [("event_unhandled", "debug")]


def test_router_tries_handlers_in_order(logger):
    seen = []

    def first(event, _log):
        seen.append("first")
        return UNHANDLED

    def second(event, _log):
        seen.append("second")
        return HandlerResult(handled=True)

    router = EventRouter(PartialHandlerFunc("first", first), PartialHandlerFunc("second", second))

    result = router.route(_envelope({"type": "message"}), logger)

    assert result.handled is True
    assert seen == ["first", "second"]


def test_router_rejects_envelope_without_event(logger):
    router = EventRouter(mention.handler(SlackClient(client=DummyWebClient())))

    with pytest.raises(EnvelopeDecodeError):
        router.route(EventEnvelope(kind=EVENTS_API, payload={}, ack_token="x"), logger)
