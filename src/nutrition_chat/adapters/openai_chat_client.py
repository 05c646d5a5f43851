"""OpenAI Responses API client for the conversation model."""

from dataclasses import dataclass

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from nutrition_chat.domain.chat import ChatTurn
from nutrition_chat.domain.errors import (
    ModelConnectionError,
    ModelQuotaError,
    ModelTimeoutError,
    ModelUnavailableError,
)
from nutrition_chat.services.conversation import ModelClient

_ROLES = {"user": "user", "model": "assistant"}


@dataclass
class OpenAIChatClient(ModelClient):
    """Model client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    temperature: float = 0.3

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        temperature: float = 0.3,
        timeout_seconds: float = 30,
    ) -> "OpenAIChatClient":
        """Create an OpenAI chat client without automatic retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=timeout_seconds, max_retries=0
            ),
            model=model,
            temperature=temperature,
        )

    async def send(
        self, message: str, history: list[ChatTurn], system_context: str
    ) -> str:
        """Send the conversation and return the model's text."""
        conversation = [
            {"role": _ROLES[turn.role], "content": turn.content} for turn in history
        ]
        conversation.append({"role": "user", "content": message})
        try:
            response = await self.client.responses.create(
                model=self.model,
                instructions=system_context,
                input=conversation,
                temperature=self.temperature,
            )
        except APITimeoutError as exc:
            raise ModelTimeoutError(str(exc)) from exc
        except APIConnectionError as exc:
            raise ModelConnectionError(str(exc)) from exc
        except RateLimitError as exc:
            raise ModelQuotaError(str(exc)) from exc
        except APIError as exc:
            raise ModelUnavailableError(str(exc)) from exc

        output_text = response.output_text
        if not output_text:
            raise ModelUnavailableError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
