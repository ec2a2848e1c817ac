from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from bughunter.core.config import LLMConfig
from bughunter.core.errors import AiCompletionError, body_snippet

logger = logging.getLogger(__name__)


def _log_http_status(e: httpx.HTTPStatusError) -> None:
    """Log a compact summary for an httpx.HTTPStatusError.

    This avoids dumping large response bodies into logs while preserving
    the important fields (status code, request URL and a short snippet).
    """
    status = e.response.status_code
    req_url = e.request.url
    logger.warning("[LLM] HTTP %s on %s: %s", status, req_url, body_snippet(e.response.text))



def _message_text(message: Any) -> str:
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


class LLMClient:
    """Chat-completion client for OpenAI, Azure OpenAI or a local Ollama.

    ``complete`` is the only operation the rest of the service relies on.
    """

    def __init__(
        self,
        config: LLMConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.model = config.model

        headers = {"Accept": "application/json"}
        api_key = config.api_key.get_secret_value() if config.api_key else ""
        if config.provider == "openai":
            headers["Authorization"] = f"Bearer {api_key}"
        elif config.provider == "azure":
            headers["api-key"] = api_key

        self._client = httpx.AsyncClient(
            timeout=config.timeout, headers=headers, transport=transport
        )

        logger.debug(
            "[LLM] provider=%s model=%s api_base=%s",
            config.provider,
            self.model,
            config.base_url,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self) -> str:
        c = self.config
        if c.provider == "ollama":
            return f"{c.base_url}/api/chat"
        if c.provider == "azure":
            if c.deployment:
                return (
                    f"{c.base_url}/openai/deployments/{c.deployment}"
                    f"/chat/completions?api-version={c.api_version}"
                )
            return f"{c.base_url}/openai/chat/completions?api-version={c.api_version}"
        return f"{c.base_url}/chat/completions"

    def _payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        c = self.config
        if c.provider == "ollama":
            return {
                "model": self.model,
                "stream": False,
                "messages": messages,
                "options": {
                    "temperature": c.temperature,
                    "num_predict": c.max_tokens,
                },
            }

        payload: Dict[str, Any] = {
            "messages": messages,
            "temperature": c.temperature,
            "max_tokens": c.max_tokens,
        }
        # Azure deployments pin the model in the URL
        if not (c.provider == "azure" and c.deployment):
            payload["model"] = self.model
        return payload

    def _content(self, data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        if self.config.provider == "ollama":
            return _message_text(data.get("message"))
        # OpenAI returns choices -> message -> content
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        return _message_text(choices[0].get("message"))

    async def complete(self, system: str, user: str) -> str:
        """Return the assistant text for a system + user prompt pair.

        Raises AiCompletionError when the call fails or the answer is empty.
        A successful response whose body is not JSON is returned verbatim.
        """
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        url = self._url()

        logger.debug("[LLM] POST %s", url)

        try:
            r = await self._client.post(url, json=self._payload(messages))
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            _log_http_status(e)
            raise AiCompletionError(
                f"LLM error (HTTP {e.response.status_code})", status=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            logger.warning("[LLM] unreachable %s: %s", url, e)
            raise AiCompletionError("LLM unreachable") from e

        try:
            data = r.json()
        except ValueError:
            logger.warning("[LLM] non-JSON body returned (len=%d)", len(r.text or ""))
            return r.text

        content = self._content(data)
        if not content:
            raise AiCompletionError("LLM returned empty response")
        return content
