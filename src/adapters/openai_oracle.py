"""OpenAI completion adapter.

Implements the core CompletionOracle on top of ``openai.AsyncOpenAI``: plain
persona replies, assistant answers with tool calling, and JSON-mode typo
checks.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

import openai
from openai import AsyncOpenAI

from core.errors import OracleError
from core.models import ChatTurn, Completion, MessageRecord, TypoVerdict

LOGGER = logging.getLogger(__name__)

ActionHandler = Callable[[dict], Awaitable[str]]

TYPO_PROMPT = """Tu es un correcteur pour WhatsApp.
RÈGLES:
- Corrige UNIQUEMENT les vraies fautes de frappe
- NE JAMAIS traduire ou changer la langue
- Garde le style SMS et les abréviations (tkt, mdr, etc)

Réponds en JSON:
{
  "hasTypos": true/false,
  "correctedText": "texte corrigé",
  "confidence": 0-100
}"""


@dataclass(frozen=True)
class Action:
    """A named external action the model may invoke."""

    name: str
    description: str
    parameters: dict
    handler: ActionHandler

    def schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


async def _web_search(arguments: dict) -> str:
    # No search backend: the model answers from its own knowledge.
    query = str(arguments.get("query", "")).strip()
    return f"Utilise tes connaissances pour répondre sur: {query}"


WEB_SEARCH = Action(
    name="web_search",
    description="Rechercher des informations actuelles sur le web",
    parameters={
        "type": "object",
        "properties": {"query": {"type": "string", "description": "La requête de recherche"}},
        "required": ["query"],
    },
    handler=_web_search,
)


@dataclass(frozen=True)
class ModelSettings:
    model: str
    temperature: float
    max_tokens: int


def parse_typo_verdict(raw: Optional[str]) -> TypoVerdict:
    """Parse the JSON body of a typo check. Raises OracleError on bad output."""

    if not raw:
        raise OracleError("Empty typo check response")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OracleError(f"Typo check returned invalid JSON: {raw[:200]}") from exc
    if not isinstance(data, dict):
        raise OracleError("Typo check JSON is not an object")
    try:
        confidence = int(float(data.get("confidence", 0)))
    except (TypeError, ValueError) as exc:
        raise OracleError(f"Invalid confidence: {data.get('confidence')!r}") from exc
    return TypoVerdict(
        has_typos=bool(data.get("hasTypos", data.get("has_typos", False))),
        corrected_text=str(data.get("correctedText", data.get("corrected_text", "")) or ""),
        confidence=confidence,
    )


class OpenAIOracle:
    def __init__(
        self,
        client: AsyncOpenAI,
        reply: ModelSettings,
        assistant: ModelSettings,
        correction: ModelSettings,
        actions: Sequence[Action] = (WEB_SEARCH,),
        max_tool_rounds: int = 3,
    ) -> None:
        self._client = client
        self._reply = reply
        self._assistant = assistant
        self._correction = correction
        self._actions = {action.name: action for action in actions}
        self._max_tool_rounds = max_tool_rounds

    async def _create(self, settings: ModelSettings, messages: list[dict], **kwargs: Any):
        try:
            return await self._client.chat.completions.create(
                model=settings.model,
                messages=messages,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                **kwargs,
            )
        except openai.OpenAIError as exc:
            raise OracleError(f"OpenAI call failed: {exc}") from exc

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        user_message: str,
        tools: Optional[Sequence[str]] = None,
    ) -> Completion:
        messages: list[dict] = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": user_message})

        if not tools:
            response = await self._create(self._reply, messages)
            return Completion(text=response.choices[0].message.content or "")

        schemas = []
        for name in tools:
            action = self._actions.get(name)
            if action is None:
                LOGGER.warning("Unknown tool requested: %s", name)
                continue
            schemas.append(action.schema())

        invoked: list[str] = []
        for _ in range(self._max_tool_rounds):
            kwargs: dict[str, Any] = {}
            if schemas:
                kwargs = {"tools": schemas, "tool_choice": "auto"}
            response = await self._create(self._assistant, messages, **kwargs)
            message = response.choices[0].message
            tool_calls = message.tool_calls or []
            if not tool_calls:
                return Completion(text=message.content or "", tool_invocations=tuple(invoked))

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.function.name,
                                "arguments": call.function.arguments,
                            },
                        }
                        for call in tool_calls
                    ],
                }
            )
            for call in tool_calls:
                invoked.append(call.function.name)
                result = await self._run_action(call.function.name, call.function.arguments)
                messages.append({"role": "tool", "tool_call_id": call.id, "content": result})

        # Out of rounds: ask for a final answer without tools.
        response = await self._create(self._assistant, messages)
        return Completion(text=response.choices[0].message.content or "", tool_invocations=tuple(invoked))

    async def _run_action(self, name: str, raw_arguments: str) -> str:
        action = self._actions.get(name)
        if action is None:
            return f"Outil inconnu: {name}"
        try:
            arguments = json.loads(raw_arguments or "{}")
        except json.JSONDecodeError:
            LOGGER.warning("Invalid arguments for %s: %s", name, raw_arguments)
            return "Arguments invalides"
        LOGGER.info("Running action %s", name)
        return await action.handler(arguments)

    async def check_typos(self, text: str, context: Sequence[MessageRecord]) -> TypoVerdict:
        prompt = TYPO_PROMPT
        if context:
            lines = [f"{'Moi' if record.from_me else 'Contact'}: {record.body}" for record in context]
            prompt = f"{prompt}\n\nCONTEXTE:\n" + "\n".join(lines)
        response = await self._create(
            self._correction,
            [
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            response_format={"type": "json_object"},
        )
        return parse_typo_verdict(response.choices[0].message.content)
