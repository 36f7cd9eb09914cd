"""
Runs a raw command end to end: split, classify and execute each part in order.

Sub-commands run strictly one after another against the same session so a
role or permission created by one is visible to the next.
"""
from typing import List, Optional, Tuple, Union
from sqlalchemy.exc import IntegrityError

from app.features.ai_commands.classifier import IntentClassifier
from app.features.ai_commands.exceptions import ErrorKind
from app.features.ai_commands.executor import CommandExecutor
from app.features.ai_commands.intents import BatchOutcome, CommandIntent, CommandOutcome
from app.features.ai_commands.splitter import CommandSplitter
from app.features.permissions.repository import RbacRepository
from app.utils import get_logger


log = get_logger(__name__)


class BatchOrchestrator:
    def __init__(
        self,
        repository: RbacRepository,
        classifier: IntentClassifier,
        splitter: Optional[CommandSplitter] = None,
        executor: Optional[CommandExecutor] = None,
        actor_id: Optional[str] = None,
    ):
        self.repository = repository
        self.classifier = classifier
        self.splitter = splitter or CommandSplitter(classifier)
        self.executor = executor or CommandExecutor(repository, classifier, actor_id=actor_id)

    async def run(self, command: str) -> Union[CommandOutcome, BatchOutcome]:
        commands = await self.splitter.split(command)
        log.info(f"Running {len(commands)} command(s) from {command!r}")

        outcomes: List[CommandOutcome] = []
        last_role: Optional[str] = None
        last_permission: Optional[str] = None
        for index, sub_command in enumerate(commands):
            outcome, intent = await self._run_one(sub_command, command, last_role, last_permission)
            if intent is not None:
                last_role = intent.entities.roleName or last_role
                last_permission = intent.entities.permissionName or last_permission
            outcomes.append(outcome)
            outcome.index = index

        if len(outcomes) == 1:
            outcomes[0].index = None
            return outcomes[0]

        succeeded = sum(1 for o in outcomes if o.success)
        return BatchOutcome(
            success=succeeded == len(outcomes),
            message=f"{succeeded} of {len(outcomes)} commands succeeded",
            results=outcomes,
        )

    async def _run_one(
        self,
        command: str,
        original_command: str,
        last_role: Optional[str],
        last_permission: Optional[str],
    ) -> Tuple[CommandOutcome, Optional[CommandIntent]]:
        intent: Optional[CommandIntent] = None
        try:
            context = await self.repository.snapshot()
            context.last_role = last_role
            context.last_permission = last_permission
            intent = await self.classifier.parse_command(command, context)
            return await self.executor.execute(intent, command, original_command), intent
        except IntegrityError:
            log.warning(f"Integrity error while running {command!r}")
            await self.repository.rollback()
            return self._failure(command, "Item already exists", ErrorKind.CONFLICT, intent), intent
        except Exception:
            log.exception(f"Unexpected error while running {command!r}")
            await self.repository.rollback()
            return self._failure(command, "Internal server error", ErrorKind.INTERNAL, intent), intent

    @staticmethod
    def _failure(
        command: str, error: str, kind: ErrorKind, intent: Optional[CommandIntent]
    ) -> CommandOutcome:
        return CommandOutcome(
            success=False,
            command=command,
            error=error,
            error_kind=kind,
            suggestions=["Please check if the role or permission exists", "Try the command again"],
            confidence=intent.confidence if intent else None,
        )
