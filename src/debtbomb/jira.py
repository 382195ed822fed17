"""Minimal Jira Cloud REST v3 client used for debt follow-up tickets."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

CLOSE_TRANSITIONS = ("done", "closed", "resolve", "resolved")
LABELS = ["debtbomb", "expired"]


class JiraError(Exception):
    pass


def text_to_adf(text: str) -> Dict[str, Any]:
    """Convert plain text to an Atlassian document, one paragraph per line."""
    content: List[Dict[str, Any]] = []
    for line in text.split("\n"):
        node: Dict[str, Any] = {"type": "paragraph"}
        if line:
            node["content"] = [{"type": "text", "text": line}]
        content.append(node)
    return {"version": 1, "type": "doc", "content": content}


class JiraClient:
    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._auth = httpx.BasicAuth(email, api_token)
        self._headers = {"Content-Type": "application/json", "Accept": "application/json"}

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            resp = self._client.request(
                method, self.base_url + path, json=body, auth=self._auth, headers=self._headers
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise JiraError(f"jira request {method} {path} failed: {e}") from e
        if resp.status_code < 200 or resp.status_code >= 300:
            raise JiraError(f"jira api error: {resp.status_code} {resp.text}")
        return resp

    def create_ticket(
        self,
        project: str,
        summary: str,
        description: str,
        issue_type: str,
        priority: str = "",
    ) -> str:
        fields: Dict[str, Any] = {
            "project": {"key": project},
            "summary": summary,
            "description": text_to_adf(description),
            "issuetype": {"name": issue_type},
            "labels": list(LABELS),
        }
        if priority:
            fields["priority"] = {"name": priority}
        resp = self._request("POST", "/rest/api/3/issue", {"fields": fields})
        try:
            return resp.json()["key"]
        except (ValueError, KeyError, TypeError) as e:
            raise JiraError(f"unexpected create response: {resp.text}") from e

    def update_priority(self, issue_key: str, priority: str) -> None:
        self._request("PUT", f"/rest/api/3/issue/{issue_key}", {"fields": {"priority": {"name": priority}}})

    def close_ticket(self, issue_key: str) -> None:
        resp = self._request("GET", f"/rest/api/3/issue/{issue_key}/transitions")
        try:
            transitions = resp.json().get("transitions") or []
        except (ValueError, AttributeError) as e:
            raise JiraError(f"unexpected transitions response: {resp.text}") from e
        if not isinstance(transitions, list):
            raise JiraError(f"unexpected transitions response: {resp.text}")

        transition_id = None
        for t in transitions:
            if not isinstance(t, dict):
                continue
            if str(t.get("name", "")).lower() in CLOSE_TRANSITIONS:
                transition_id = t.get("id")
                break
        if not transition_id:
            raise JiraError(f"could not find close transition for issue {issue_key}")

        self._request(
            "POST", f"/rest/api/3/issue/{issue_key}/transitions", {"transition": {"id": transition_id}}
        )
