"""OpenRouter LLM client implementation."""

import asyncio
import base64
from typing import Any, Dict, List, Optional, Union

import httpx

from tenancy_watch.core.exceptions import APIClientError, APITimeoutError
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

ContentPart = Union[str, Dict[str, Any]]


class OpenRouterClient:
    """Chat-completions client for OpenRouter.

    Exposes the same ``generate_content`` interface as ``GeminiClient``.
    Binary parts are sent as ``file`` content parts with a base64 data URL.
    Rate limits, 5xx responses and timeouts are retried with exponential
    backoff; any other 4xx fails immediately.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "openai/gpt-4o-mini",
        base_url: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: int = 120,
        max_retries: int = 3,
        retry_delay: float = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport

        LOGGER.info(f"Initialized OpenRouter client with model {self.model}")

    @property
    def name(self) -> str:
        return f"openrouter:{self.model}"

    @staticmethod
    def _to_message_content(contents: Union[str, List[ContentPart]]) -> List[Dict[str, Any]]:
        if isinstance(contents, str):
            return [{"type": "text", "text": contents}]

        content = []
        for part in contents:
            if isinstance(part, str):
                content.append({"type": "text", "text": part})
            elif isinstance(part, dict) and "data" in part:
                encoded = base64.b64encode(part["data"]).decode("ascii")
                content.append({
                    "type": "file",
                    "file": {
                        "filename": part.get("filename", "document.pdf"),
                        "file_data": f"data:{part['mime_type']};base64,{encoded}",
                    },
                })
            elif isinstance(part, dict) and "text" in part:
                content.append({"type": "text", "text": part["text"]})
        return content

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST ``payload`` to the completions endpoint, retrying transient failures.

        Raises:
            APIClientError: On a non-retryable status or when retries run out
            APITimeoutError: If every attempt timed out
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(self.max_retries):
                last_attempt = attempt == self.max_retries - 1
                try:
                    response = await client.post(self.base_url, headers=headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    body = e.response.text[:500]
                    LOGGER.warning(
                        f"OpenRouter HTTP {status_code} (attempt {attempt + 1}/{self.max_retries})",
                        extra={"model": self.model, "error_body": body},
                    )
                    if 400 <= status_code < 500 and status_code != 429:
                        raise APIClientError(f"OpenRouter client error {status_code}: {body}", original_error=e)
                    if last_attempt:
                        raise APIClientError(f"OpenRouter HTTP {status_code} after retries", original_error=e)

                except httpx.TimeoutException as e:
                    LOGGER.warning(f"OpenRouter timeout (attempt {attempt + 1}/{self.max_retries})")
                    if last_attempt:
                        raise APITimeoutError(
                            f"OpenRouter timed out after {self.max_retries} attempts", original_error=e
                        )

                except (httpx.HTTPError, ValueError) as e:
                    LOGGER.warning(f"OpenRouter request failed (attempt {attempt + 1}/{self.max_retries}): {e}")
                    if last_attempt:
                        raise APIClientError(f"OpenRouter request failed: {str(e)}", original_error=e)

                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise APIClientError(f"OpenRouter call failed after {self.max_retries} attempts")

    async def generate_content(
        self,
        contents: Union[str, List[ContentPart]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using the OpenRouter model.

        Raises:
            APIClientError: If generation fails or the response has no content
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": self._to_message_content(contents)})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.0,
        }

        if generation_config:
            if "temperature" in generation_config:
                payload["temperature"] = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                payload["max_tokens"] = generation_config["max_output_tokens"]
            if generation_config.get("response_mime_type") == "application/json":
                payload["response_format"] = {"type": "json_object"}

        response = await self._post(payload)

        try:
            return response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            LOGGER.error(f"Unexpected OpenRouter response shape: {str(response)[:500]}")
            raise APIClientError("OpenRouter response missing message content", original_error=e)
