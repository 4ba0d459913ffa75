"""Proxy to an OpenAI-compatible chat-completions endpoint."""

import logging
from typing import Optional

import httpx

from bodycomp.errors import ServiceUnavailableError, UpstreamError

logger = logging.getLogger("bodycomp.chat")

SYSTEM_PROMPT = (
    "You are a friendly assistant inside a body-composition tracking app. "
    "Explain measurements such as weight, body fat, muscle mass, water and BMI "
    "in plain language. You are not a doctor; recommend seeing one for medical questions."
)


class ChatClient:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    async def complete(self, message: str, history: list[dict] | None = None) -> str:
        """Send the conversation upstream and return the assistant's reply text."""
        if not self.configured:
            raise ServiceUnavailableError("Chat is not configured.")

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": message})

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"model": self.model, "messages": messages},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Chat upstream returned %d", exc.response.status_code)
            raise UpstreamError("Chat service failed.") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Chat upstream unreachable: %r", exc)
            raise UpstreamError("Chat service failed.") from exc

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error("Unexpected chat upstream payload")
            raise UpstreamError("Chat service failed.") from exc
