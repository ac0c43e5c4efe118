"""
Client side of the chat-completion proxy: POST /api/ai with the user's bearer token.
Any failure (unreachable, timeout, non-2xx, empty reply) surfaces as ChatCompletionError.
"""
import httpx

from config import ANALYSIS_MODEL, CHAT_TIMEOUT, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, PROXY_BASE_URL
from agent.prompts import CONNECTION_TEST_PROMPT, CONNECTION_TEST_SYSTEM


class ChatCompletionError(Exception):
    pass


class ChatClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = PROXY_BASE_URL,
        model: str = ANALYSIS_MODEL,
        client: httpx.AsyncClient | None = None,
        timeout: float = CHAT_TIMEOUT,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url)
        return self._client

    async def complete(self, system: str, user: str) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": DEFAULT_MAX_TOKENS,
        }
        client = await self._get_client()
        try:
            resp = await client.post(
                "/api/ai",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ChatCompletionError(f"chat completion timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise ChatCompletionError(f"chat proxy unreachable: {e}") from e

        if resp.status_code != 200:
            raise ChatCompletionError(f"API Error {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ChatCompletionError(f"unexpected chat reply shape: {e}") from e
        print(f"[SIGNAL] model reply {len(content)} chars")
        return content

    async def test_connection(self) -> bool:
        try:
            reply = await self.complete(CONNECTION_TEST_SYSTEM, CONNECTION_TEST_PROMPT)
        except ChatCompletionError as e:
            print(f"[SIGNAL] connection test failed: {e}")
            return False
        return len(reply) > 0
