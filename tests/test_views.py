"""Tests for the modal view builders."""

from slack_jira_bot.jira import TicketReference
from slack_jira_bot.modals import views


def test_long_titles_fit_slack_limit():
    title = views._modal("A" * 30, [])["title"]["text"]

    assert len(title) == views.MAX_TITLE_LENGTH
    assert title == "A" * (views.MAX_TITLE_LENGTH - 3) + "..."


def test_title_at_limit_is_left_alone():
    title = views._modal("B" * views.MAX_TITLE_LENGTH, [])["title"]["text"]

    assert title == "B" * views.MAX_TITLE_LENGTH


def test_built_in_views_keep_their_titles():
    ticket = TicketReference(key="OPS-1", url="https://jira.example.com/browse/OPS-1")

    titles = [view["title"]["text"] for view in (views.pending_view(), views.ticket_view(ticket))]

    assert titles == ["Creating Jira Issue", "Jira Issue Filed"]
