"""Client for an OpenAI-compatible chat-completions endpoint."""

from typing import Any

import requests
from loguru import logger

from focus_annotator.config import DEFAULT_MODEL, DEFAULT_MODEL_TIMEOUT, DEFAULT_MODEL_URL
from focus_annotator.core.retry import TRANSIENT_STATUSES
from focus_annotator.errors import ModelError, ModelResponseError, ModelTransientError
from focus_annotator.service.prompt import build_messages


class OpenAIModelClient:
    """Vision-capable annotation model behind a chat-completions API."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        url: str = DEFAULT_MODEL_URL,
        timeout: float = DEFAULT_MODEL_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.sess = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def annotate(
        self,
        *,
        platform: str,
        frames: list[dict[str, Any]],
        image: str | None = None,
        prompt: str | None = None,
    ) -> str:
        """Ask the model for focus order annotations; return its raw reply text.

        Raises:
            ModelTransientError: Timeout, connection failure, 429 or 5xx.
            ModelError: Missing credentials or any other HTTP failure.
            ModelResponseError: The response has no message content.
        """
        if not self.configured:
            msg = "No API key configured for the annotation model"
            raise ModelError(msg)

        body = {
            "model": self.model,
            "messages": build_messages(
                platform=platform, frames=frames, image=image, prompt=prompt
            ),
            "temperature": 0.1,
            "response_format": {"type": "json_object"},
        }
        logger.debug(
            "Calling model {} ({} frame(s), image={})", self.model, len(frames), bool(image)
        )
        try:
            r = self.sess.post(
                self.url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            msg = f"Model request failed: {e}"
            raise ModelTransientError(msg) from e

        if r.status_code in TRANSIENT_STATUSES:
            msg = f"Model endpoint returned HTTP {r.status_code}"
            raise ModelTransientError(msg, status=r.status_code)
        if r.status_code >= 400:
            msg = f"Model endpoint returned HTTP {r.status_code}: {r.text[:200]}"
            raise ModelError(msg)

        try:
            data = r.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            msg = "Model response has no message content"
            raise ModelResponseError(msg) from e
        if not isinstance(content, str) or not content.strip():
            msg = "Model response has empty message content"
            raise ModelResponseError(msg)
        return content
