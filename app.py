"""Application entry point for the Slack Jira bot."""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass
from datetime import timedelta
from importlib import metadata
from uuid import uuid4

import requests
import structlog
from flask import Flask, jsonify
from slack_sdk import WebClient
from slack_sdk.socket_mode import SocketModeClient
from werkzeug.serving import make_server

from slack_jira_bot.background import TaskRunner
from slack_jira_bot.config import AppSettings, get_settings
from slack_jira_bot.dispatch import Dispatcher, SocketModeTransport
from slack_jira_bot.events import for_events
from slack_jira_bot.jira import JiraClient
from slack_jira_bot.logging_config import configure_logging
from slack_jira_bot.modals import SubmissionLedger, for_modals
from slack_jira_bot.slack_client import SlackClient

DISTRIBUTION_NAME = "slack-jira-bot"


@dataclass
class Bot:
    """Everything the process runs, built once from settings."""

    settings: AppSettings
    slack_client: SlackClient
    transport: SocketModeTransport
    runner: TaskRunner
    dispatcher: Dispatcher


def build_bot(
    settings: AppSettings,
    *,
    web_client: WebClient | None = None,
    socket_client: SocketModeClient | None = None,
    jira_session: requests.Session | None = None,
) -> Bot:
    """Wire Slack, Jira, the flow registry and the dispatcher together."""

    web_client = web_client or WebClient(token=settings.bot_token)
    slack_client = SlackClient(client=web_client)
    jira_client = JiraClient(
        base_url=settings.jira_url,
        project=settings.jira_project,
        username=settings.jira_username,
        api_token=settings.jira_api_token,
        timeout=settings.filing_timeout_seconds,
        session=jira_session,
    )
    runner = TaskRunner()
    ledger = SubmissionLedger(window=timedelta(seconds=settings.dedup_window_seconds))

    transport = SocketModeTransport(
        socket_client or SocketModeClient(app_token=settings.app_token, web_client=web_client)
    )
    dispatcher = Dispatcher(
        transport,
        events=for_events(slack_client),
        interactions=for_modals(filer=jira_client, client=slack_client, runner=runner, ledger=ledger),
        runner=runner,
    )
    return Bot(
        settings=settings,
        slack_client=slack_client,
        transport=transport,
        runner=runner,
        dispatcher=dispatcher,
    )


def _load_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def create_app(bot: Bot | None = None) -> Flask:
    """Create the Flask application serving the health endpoint."""

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    _register_error_handlers(flask_app)

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")

        try:
            get_settings()
            health["config"] = "valid"
        except RuntimeError as exc:
            health["config"] = "invalid"
            health["config_error"] = str(exc)
            health["ok"] = False

        if bot is not None:
            if bot.dispatcher.stopping:
                health["dispatcher"] = "stopping"
                health["ok"] = False
            else:
                health["dispatcher"] = "running"
            health["in_flight"] = bot.runner.in_flight

        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


def _serve_health(flask_app: Flask, port: int):
    server = make_server("0.0.0.0", port, flask_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="healthz", daemon=True)
    thread.start()
    return server


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    log = structlog.get_logger()

    bot = build_bot(settings)
    server = _serve_health(create_app(bot), settings.health_port)

    def _request_stop(signum, _frame):
        log.info("shutdown_requested", signal=signal.Signals(signum).name)
        bot.dispatcher.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    bot.transport.connect()
    log.info("bot_started", jira_project=settings.jira_project, health_port=settings.health_port)
    try:
        bot.dispatcher.run()
    finally:
        bot.transport.close()
        drained = bot.dispatcher.shutdown(grace_period=settings.grace_period_seconds)
        server.shutdown()
        # exit still joins workers running a tracker or Slack call
        log.info("bot_stopped", drained=drained, still_running=bot.runner.in_flight)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
