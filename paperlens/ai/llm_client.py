"""
Chat Completion Client for PaperLens
Handles text generation through an OpenAI-compatible chat-completions API.

Works with OpenAI itself and with any local or hosted server exposing the
same /chat/completions endpoint (Ollama, vLLM, LM Studio, ...).

Two generation modes:
- complete(): one non-streaming request, returns the full text
- complete_stream(): Server-Sent Events stream, returns an iterator of text deltas

Every transport, HTTP-status and payload failure is raised as ProviderError.
"""

import json
import time
from collections.abc import Iterator

import requests

from ..config import (
    CONNECTION_TEST_MAX_TOKENS,
    CONNECTION_TEST_PROMPT,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
)
from ..errors import ProviderError
from ..logging_config import debug_log, warning

CHAT_COMPLETIONS_PATH = "/chat/completions"
SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


class ChatCompletionClient:
    """
    Client for an OpenAI-compatible chat-completions endpoint.

    Example:
        client = ChatCompletionClient(
            api_url="https://api.openai.com/v1",
            model="gpt-3.5-turbo",
            api_key="sk-...",
        )
        text = client.complete("Summarize: ...", max_output_tokens=500)
        for delta in client.complete_stream("Interpret: ..."):
            print(delta, end="")
    """

    def __init__(
        self,
        api_url: str,
        model: str,
        api_key: str,
        timeout: float = LLM_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_url: Base URL (".../v1") or full ".../chat/completions" URL
            model: Default model identifier
            api_key: Bearer credential
            timeout: Request timeout in seconds
            session: Optional requests.Session for connection reuse
        """
        self.api_url = api_url
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def completions_url(self) -> str:
        url = self.api_url.rstrip("/")
        if url.endswith(CHAT_COMPLETIONS_PATH):
            return url
        return url + CHAT_COMPLETIONS_PATH

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, prompt: str, model: str | None, max_output_tokens: int,
                 temperature: float, stream: bool) -> dict:
        return {
            "model": model or self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_output_tokens,
            "temperature": temperature,
            "stream": stream,
        }

    def _post(self, payload: dict, stream: bool) -> requests.Response:
        """POST the payload and turn transport and status failures into ProviderError."""
        try:
            response = self.session.post(
                self.completions_url,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
                stream=stream,
            )
        except requests.exceptions.Timeout as e:
            raise ProviderError(
                f"request to {self.completions_url} timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderError(f"cannot connect to {self.completions_url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"request to {self.completions_url} failed: {e}") from e

        if response.status_code != 200:
            detail = self._error_detail(response)
            response.close()
            raise ProviderError(
                f"{self.completions_url} returned status {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        return response

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Best-effort error message from a failed response body."""
        try:
            body = response.json()
        except ValueError:
            return (response.text or "").strip()[:300]
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return str(body["error"].get("message", body["error"]))
        return json.dumps(body)[:300]

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ) -> str:
        """
        Generate a complete response in one request.

        Args:
            prompt: User message content
            model: Model override (defaults to the client's model)
            max_output_tokens: Response token cap
            temperature: Sampling temperature

        Returns:
            str: Generated text ("" when the provider returns no content)

        Raises:
            ProviderError: On network, HTTP or payload failure
        """
        payload = self._payload(prompt, model, max_output_tokens, temperature, stream=False)

        debug_log(f"[LLM COMPLETE] Model: {payload['model']}, max tokens: {max_output_tokens}, "
                  f"prompt length: {len(prompt)} chars")

        start_time = time.time()
        response = self._post(payload, stream=False)

        try:
            result = response.json()
            content = result["choices"][0]["message"].get("content") or ""
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderError(f"malformed completion response: {e}") from e
        if not isinstance(content, str):
            raise ProviderError(
                f"malformed completion response: content is {type(content).__name__}, not text"
            )

        elapsed = time.time() - start_time
        tokens_used = (result.get("usage") or {}).get("completion_tokens", 0)
        debug_log(f"[LLM COMPLETE] {tokens_used} tokens, {len(content)} chars in {elapsed:.2f}s")

        return content.strip()

    def complete_stream(
        self,
        prompt: str,
        model: str | None = None,
        max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ) -> Iterator[str]:
        """
        Stream a response as incremental text deltas.

        The request is sent when this method is called, so connection and
        HTTP status failures raise here. The returned generator ends normally
        on the provider's "[DONE]" event or when the body ends. Closing it
        early closes the HTTP response.

        Returns:
            Iterator[str]: Non-empty text deltas in arrival order

        Raises:
            ProviderError: On network or HTTP failure; the iterator raises it
                for payload failures and dropped connections mid-stream
        """
        payload = self._payload(prompt, model, max_output_tokens, temperature, stream=True)

        debug_log(f"[LLM STREAM] Model: {payload['model']}, max tokens: {max_output_tokens}, "
                  f"prompt length: {len(prompt)} chars")

        start_time = time.time()
        response = self._post(payload, stream=True)
        # SSE bodies are UTF-8; requests would otherwise guess ISO-8859-1 for text/event-stream
        response.encoding = "utf-8"
        return self._iter_deltas(response, start_time)

    def _iter_deltas(self, response: requests.Response, start_time: float) -> Iterator[str]:
        delta_count = 0
        char_count = 0

        try:
            for line in response.iter_lines(decode_unicode=True):
                data = self._parse_sse_line(line)
                if data is None:
                    continue
                if data == SSE_DONE:
                    break

                delta = self._extract_delta(data)
                if delta:
                    delta_count += 1
                    char_count += len(delta)
                    yield delta
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"stream interrupted after {char_count} chars: {e}") from e
        finally:
            response.close()

        debug_log(f"[LLM STREAM] {delta_count} deltas, {char_count} chars "
                  f"in {time.time() - start_time:.2f}s")

    @staticmethod
    def _parse_sse_line(line: str | None) -> str | None:
        """Payload of a 'data:' line, or None for blank lines, comments and other fields."""
        if not line or not line.startswith(SSE_DATA_PREFIX):
            return None
        return line[len(SSE_DATA_PREFIX):].strip()

    @staticmethod
    def _extract_delta(data: str) -> str:
        """Text delta of one stream event."""
        try:
            event = json.loads(data)
        except json.JSONDecodeError as e:
            raise ProviderError(f"malformed stream event: {data[:100]}") from e

        if not isinstance(event, dict):
            raise ProviderError(f"malformed stream event: {data[:100]}")

        if event.get("error"):
            err = event["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise ProviderError(f"provider reported an error mid-stream: {message}")

        choices = event.get("choices") or []
        if not choices:
            return ""
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ProviderError(f"malformed stream event: {data[:100]}")
        delta = choices[0].get("delta") or {}
        if not isinstance(delta, dict):
            raise ProviderError(f"malformed stream event: {data[:100]}")
        content = delta.get("content") or ""
        if not isinstance(content, str):
            raise ProviderError(f"malformed stream event: {data[:100]}")
        return content

    def test_connection(self) -> tuple[bool, str]:
        """
        Send a tiny completion to verify endpoint, model and credential.

        Returns:
            (success, message) where message explains likely causes on failure
        """
        debug_log(f"[LLM TEST] Testing {self.completions_url} with model {self.model}")

        try:
            self.complete(CONNECTION_TEST_PROMPT, max_output_tokens=CONNECTION_TEST_MAX_TOKENS)
        except ProviderError as e:
            hints = self._connection_hints(e)
            warning(f"[LLM TEST] Connection test failed: {e}")
            message = f"Connection test failed: {e}"
            if hints:
                message += "\n\nPossible causes:\n" + "\n".join(
                    f"{i}. {hint}" for i, hint in enumerate(hints, 1)
                )
            return False, message

        debug_log("[LLM TEST] Connection successful")
        return True, f"Connected to {self.model} at {self.completions_url}"

    @staticmethod
    def _connection_hints(error: ProviderError) -> list[str]:
        if error.status_code == 404:
            return [
                "The API path is wrong; the URL may need to end in /v1 or /chat/completions",
                "The local model server is not running",
                "The port number is wrong",
            ]
        if error.status_code in (401, 403):
            return [
                "The API key is wrong",
                "The API key lacks permission for this model",
            ]
        if error.status_code is None and "connect" in error.cause:
            return [
                "Network connection problem",
                "The local model server is not running",
                "A firewall is blocking the connection",
            ]
        return []
