"""
Chat-completion relay.

Forwards a caller's bearer token and chat request to the OpenAI-compatible upstream, filling in
model / temperature / max_tokens only when the caller left them out. Upstream error replies are
raised as UpstreamError with the original status and body so the route can pass them through.
"""
import openai

from config import (
    CHAT_TIMEOUT,
    CHAT_UPSTREAM_URL,
    DEFAULT_CHAT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
)
from data.fallback import UpstreamError


def with_defaults(body: dict) -> dict:
    """Chat request with defaults applied to absent fields. An explicit 0 is kept."""
    return {
        "model": body.get("model") or DEFAULT_CHAT_MODEL,
        "messages": body.get("messages") or [],
        "temperature": DEFAULT_TEMPERATURE if body.get("temperature") is None else body["temperature"],
        "max_tokens": DEFAULT_MAX_TOKENS if body.get("max_tokens") is None else body["max_tokens"],
    }


class ChatCompletionRelay:
    def __init__(self, base_url: str = CHAT_UPSTREAM_URL, timeout: float = CHAT_TIMEOUT):
        self.base_url = base_url
        self.timeout = timeout

    def _client_for(self, token: str) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=token,
            base_url=self.base_url,
            max_retries=0,
            timeout=self.timeout,
        )

    async def relay(self, token: str, body: dict) -> dict:
        request = with_defaults(body)
        print(f"[AI PROXY] model={request['model']} messages={len(request['messages'])} "
              f"max_tokens={request['max_tokens']}")
        client = self._client_for(token)
        try:
            completion = await client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            print(f"[AI PROXY] upstream HTTP {e.status_code}")
            raise UpstreamError(
                "ChatUpstream",
                e.status_code,
                e.response.content,
                e.response.headers.get("content-type", "application/json"),
            ) from e
        finally:
            await client.close()
        return completion.model_dump(exclude_unset=True)
