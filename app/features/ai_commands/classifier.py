"""
Intent classification through the language model.

The classifier never raises to its caller: transport errors, timeouts and
unusable replies all degrade to the deterministic FallbackIntentParser.
"""
import asyncio
from typing import List, Optional

from app.core import config
from app.features.ai_commands.exceptions import ClassifierUnavailableError
from app.features.ai_commands.fallback import FallbackIntentParser
from app.features.ai_commands.intents import CommandIntent, EntityContext, PAIRED_ACTIONS, SplitReply
from app.features.ai_commands.llm import LanguageModelClient
from app.features.ai_commands.prompts import (
    render_parse_command,
    render_split_commands,
    render_suggest_corrections,
)
from app.features.ai_commands.replies import parse_structured_reply
from app.features.ai_commands.resolver import EntityResolver
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_CORRECTIONS = [
    "Please check if the role or permission exists",
    "Try using simpler command structure",
    "Make sure names are spelled correctly",
]


class IntentClassifier:
    """
    Turns one command into a CommandIntent.

    Args:
        client: Language model transport; None runs in fallback-only mode
        fallback: Parser used whenever the model can't be used
        resolver: Maps model-reported names onto stored names
        timeout: Seconds allowed for one model call
    """

    def __init__(
        self,
        client: Optional[LanguageModelClient],
        fallback: Optional[FallbackIntentParser] = None,
        resolver: Optional[EntityResolver] = None,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.resolver = resolver or EntityResolver()
        self.fallback = fallback or FallbackIntentParser(self.resolver)
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.client is not None

    async def parse_command(self, command: str, context: EntityContext) -> CommandIntent:
        try:
            reply = await self._complete(render_parse_command(command, context))
            intent = parse_structured_reply(reply, CommandIntent)
        except ClassifierUnavailableError as e:
            if self.available:
                log.warning(f"Classifier failed for {command!r}, using fallback parser: {e.message}")
            return self.fallback.parse(command, context)

        intent, resolved = self.resolver.resolve_intent(intent, context)
        return self._apply_confidence_floor(intent, resolved)

    async def split_commands(self, command: str) -> SplitReply:
        """
        Ask the model whether ``command`` holds several instructions.

        Raises:
            ClassifierUnavailableError: Model unreachable or reply unusable
        """
        reply = await self._complete(render_split_commands(command))
        return parse_structured_reply(reply, SplitReply)

    async def suggest_corrections(
        self, command: str, error: str, context: Optional[EntityContext] = None
    ) -> List[str]:
        try:
            reply = await self._complete(render_suggest_corrections(command, error, context))
            suggestions = [s for s in parse_structured_reply(reply, List[str]) if s.strip()]
        except ClassifierUnavailableError as e:
            if self.available:
                log.warning(f"Could not get corrections from classifier: {e.message}")
            return list(DEFAULT_CORRECTIONS)
        return suggestions or list(DEFAULT_CORRECTIONS)

    async def _complete(self, prompt: str) -> str:
        if self.client is None:
            raise ClassifierUnavailableError("No language model configured")
        try:
            return await asyncio.wait_for(self.client.complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ClassifierUnavailableError(f"Language model did not answer within {self.timeout}s")
        except Exception as e:
            raise ClassifierUnavailableError(f"Language model call failed: {e.__class__.__name__}") from e

    @staticmethod
    def _apply_confidence_floor(intent: CommandIntent, resolved: bool) -> CommandIntent:
        # Only when both names point at records that exist right now
        entities = intent.entities
        if (
            intent.action in PAIRED_ACTIONS
            and entities.roleName
            and entities.permissionName
            and resolved
            and intent.confidence < config.ASSIGNMENT_CONFIDENCE_FLOOR
        ):
            return intent.model_copy(update={"confidence": config.ASSIGNMENT_CONFIDENCE_FLOOR})
        return intent
