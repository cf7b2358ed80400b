"""OpenAI Responses API client for meal analysis completions."""

from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from nutriai.services.extraction import CompletionClient


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAICompletionClient":
        """Create an OpenAI completion client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        instructions: str,
        messages: list[dict[str, str]],
        temperature: float | None,
        store: bool,
    ) -> str:
        """Call OpenAI Responses API in JSON mode and return the output text."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": instructions,
            "input": [
                {"role": message["role"], "content": message["content"]}
                for message in messages
            ],
            "text": {"format": {"type": "json_object"}},
            "store": store,
        }
        if temperature is not None:
            request_payload["temperature"] = temperature

        try:
            response = await self.client.responses.create(**request_payload)
        except OpenAIError as exc:
            raise RuntimeError(f"OpenAI request failed: {exc}") from exc
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
