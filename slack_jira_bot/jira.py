"""Jira REST client used to file issues."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import requests
from requests.auth import HTTPBasicAuth

ISSUE_TYPE_BUG = "Bug"

DEFAULT_TIMEOUT = 30.0


class FilingError(Exception):
    """Raised when the tracker could not create an issue."""


@dataclass(frozen=True)
class TicketReference:
    """Identifier of a filed issue and where to find it."""

    key: str
    url: str


class IssueFiler(Protocol):
    def file(self, issue_type: str, title: str, body: str) -> TicketReference:
        ...


class JiraClient:
    """File issues into a single Jira project over the REST v2 API."""

    def __init__(
        self,
        *,
        base_url: str,
        project: str,
        username: str | None = None,
        api_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        if not project:
            raise ValueError("A Jira project key is required.")
        if session is None:
            if username is None or api_token is None:
                raise ValueError("Either a session or Jira credentials must be provided.")
            session = requests.Session()
            session.auth = HTTPBasicAuth(username, api_token)
            session.headers.update({"Accept": "application/json"})

        self._base_url = base_url.rstrip("/")
        self._project = project
        self._timeout = timeout
        self._session = session

    @property
    def project(self) -> str:
        return self._project

    def browse_url(self, key: str) -> str:
        return f"{self._base_url}/browse/{key}"

    def file(self, issue_type: str, title: str, body: str) -> TicketReference:
        """Create one issue and return its reference, raising FilingError on any failure."""

        fields = {
            "project": {"key": self._project},
            "summary": title,
            "description": body,
            "issuetype": {"name": issue_type},
        }

        try:
            response = self._session.post(
                f"{self._base_url}/rest/api/2/issue",
                json={"fields": fields},
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            raise FilingError(f"Jira did not answer within {self._timeout:g} seconds") from exc
        except requests.RequestException as exc:
            raise FilingError(f"Could not reach Jira: {exc}") from exc

        if response.status_code != 201:
            raise FilingError(f"Jira API error: {response.status_code} - {response.text[:200]}")

        try:
            key = response.json().get("key")
        except ValueError as exc:
            raise FilingError("Jira returned an unreadable response") from exc
        if not key:
            raise FilingError("Jira response did not include an issue key")

        return TicketReference(key=key, url=self.browse_url(key))
