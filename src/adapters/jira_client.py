"""Jira REST adapter implementing the IssueTrackerPort.

Uses plain HTTP calls; blocking requests run in a worker thread so the
Telethon event loop keeps draining updates.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, List, Optional

from core.ports import Issue

UNSIZED_JQL = (
    'project = {project} AND type = Story AND "Story Points" is EMPTY '
    "AND status not in (Closed, Done) ORDER BY created DESC"
)


def jql_string(value: str) -> str:
    """Quote ``value`` as a JQL string literal."""

    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class JiraClient:
    """IssueTrackerPort adapter for the Jira REST API v2."""

    def __init__(self, base_url: str, token: str, issue_type: str = "Task", timeout: int = 15) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._issue_type = issue_type
        self._timeout = timeout

    def browse_url(self, key: str) -> str:
        return f"{self._base_url}/browse/{key}"

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(f"{self._base_url}{path}", data=data, method=method)
        request.add_header("Content-Type", "application/json")
        request.add_header("Accept", "application/json")
        request.add_header("Authorization", f"Bearer {self._token}")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return json.loads(response.read().decode("utf-8") or "null")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Jira API error {e.code}: {body}") from e

    async def create_issue(self, project: str, summary: str, description: str) -> Issue:
        payload = {
            "fields": {
                "project": {"key": project},
                "summary": summary,
                "description": description,
                "issuetype": {"name": self._issue_type},
            }
        }
        created = await asyncio.to_thread(self._request, "POST", "/rest/api/2/issue", payload)
        key = created["key"]
        return Issue(key=key, summary=summary, url=self.browse_url(key))

    async def unsized_stories(self, project: str) -> List[Issue]:
        query = urllib.parse.urlencode(
            {"jql": UNSIZED_JQL.format(project=jql_string(project)), "fields": "summary", "maxResults": 100}
        )
        result = await asyncio.to_thread(self._request, "GET", f"/rest/api/2/search?{query}")
        return [
            Issue(
                key=item["key"],
                summary=item.get("fields", {}).get("summary", ""),
                url=self.browse_url(item["key"]),
            )
            for item in (result or {}).get("issues", [])
        ]


class DryRunIssueTracker:
    """Stand-in used while developing so no real issues get filed."""

    async def create_issue(self, project: str, summary: str, description: str) -> Issue:
        return Issue(key="Key", summary=summary, url="http://www.example.com")

    async def unsized_stories(self, project: str) -> List[Issue]:
        return []
