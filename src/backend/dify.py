"""Dify chat/workflow backend client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when the chat backend cannot produce an answer."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class DifyClient:
    """Forwards user text to a Dify app in blocking response mode.

    ``chat`` mode posts ``{"query": text, "inputs": {}}`` to a chat-messages
    endpoint; ``workflow`` mode posts ``{"inputs": {"user_text": text}}`` to a
    workflow run endpoint.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        mode: str = "chat",
        timeout: float = 30.0,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._mode = mode
        self._timeout = timeout

    def build_request(self, user_text: str, user_id: str) -> dict[str, Any]:
        if self._mode == "workflow":
            body: dict[str, Any] = {"inputs": {"user_text": user_text}}
        else:
            body = {"query": user_text, "inputs": {}}
        body["response_mode"] = "blocking"
        body["user"] = user_id
        return body

    async def ask(self, user_text: str, user_id: str) -> Any:
        """Send the user text and return the raw, unparsed answer."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        request_body = self.build_request(user_text, user_id)

        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self._api_url, json=request_body, headers=headers,
                    timeout=self._timeout,
                )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise BackendError(f"Backend unavailable: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("Dify error: %s %s", resp.status_code, resp.text)
            raise BackendError(
                f"Backend returned {resp.status_code}", status_code=resp.status_code,
            )

        try:
            resp_json = resp.json()
        except ValueError:
            # JSONDecodeError or UnicodeDecodeError
            return resp.text
        return extract_answer(resp_json)


def extract_answer(resp_json: Any) -> Any:
    """Pick the answer out of a chat or workflow response body.

    Chat apps put it in ``answer``. Workflow runs wrap their result in
    ``data``: ``outputs`` is handed to the parser as an already structured
    object, and so is a ``data`` object (or top-level body) carrying
    ``reply`` directly or under ``conversation``.
    """
    if not isinstance(resp_json, dict):
        return None
    if "answer" in resp_json:
        return resp_json["answer"]

    data = resp_json.get("data")
    agent = data if isinstance(data, dict) and data else resp_json
    if "answer" in agent:
        return agent["answer"]
    outputs = agent.get("outputs")
    if isinstance(outputs, dict):
        return outputs.get("answer", outputs)
    if "reply" in agent:
        return agent
    conversation = agent.get("conversation")
    if isinstance(conversation, dict) and "reply" in conversation:
        return conversation
    return None
