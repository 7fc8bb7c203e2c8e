import asyncio
from typing import Any, Dict, List, Optional, Union

from google import genai
from google.genai import errors, types

from tenancy_watch.core.exceptions import APIClientError
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

ContentPart = Union[str, Dict[str, Any]]


class GeminiClient:
    """Wrapper for the Google Gemini API client.

    Content parts are plain strings or ``{"mime_type": ..., "data": bytes}``
    dicts, which are sent inline (used for PDF documents).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: int = 120,
        max_retries: int = 3,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries

        try:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=timeout * 1000),
            )
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e)

    @property
    def name(self) -> str:
        return f"gemini:{self.model}"

    @staticmethod
    def _to_parts(contents: Union[str, List[ContentPart]]) -> List[Any]:
        if isinstance(contents, str):
            return [contents]
        parts = []
        for part in contents:
            if isinstance(part, dict) and "data" in part:
                parts.append(types.Part.from_bytes(data=part["data"], mime_type=part["mime_type"]))
            elif isinstance(part, dict) and "text" in part:
                parts.append(part["text"])
            else:
                parts.append(part)
        return parts

    async def generate_content(
        self,
        contents: Union[str, List[ContentPart]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using the Gemini model.

        Args:
            contents: Input content (string or list of parts)
            system_instruction: Optional system instruction
            generation_config: Optional generation config (temperature, etc.)

        Returns:
            Generated text response

        Raises:
            APIClientError: If generation fails
        """
        config = types.GenerateContentConfig(temperature=0.0)

        if generation_config:
            if "temperature" in generation_config:
                config.temperature = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                config.max_output_tokens = generation_config["max_output_tokens"]
            if "response_mime_type" in generation_config:
                config.response_mime_type = generation_config["response_mime_type"]

        if system_instruction:
            config.system_instruction = system_instruction

        parts = self._to_parts(contents)

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=parts,
                    config=config
                )

                if not response.text:
                    LOGGER.warning("Empty response from Gemini")
                    return ""

                return response.text

            except errors.ClientError as e:
                # 4xx other than 429 is not retried
                if e.code != 429:
                    LOGGER.error(f"Gemini rejected the request ({e.code}): {e}")
                    raise APIClientError(f"Gemini client error {e.code}: {e}", original_error=e)
                LOGGER.warning(f"Gemini rate limited (attempt {attempt + 1}/{self.max_retries})")
                if attempt == self.max_retries - 1:
                    raise APIClientError("Gemini rate limit persisted after retries", original_error=e)
                await asyncio.sleep(2 ** (attempt + 1))

            except Exception as e:
                LOGGER.warning(
                    f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                else:
                    LOGGER.error(f"Gemini generation failed after retries: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", original_error=e)

        raise APIClientError("Gemini generation failed")
