import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Union

from textqa_agent.actions.action_executor import ActionExecutor
from textqa_agent.data import CompiledStep, ExecutionRecord, RuleTranslation, Step, StepResult
from textqa_agent.errors import ActionError, TranslationValidationError
from textqa_agent.translator import Translator

SessionProvider = Callable[[Optional[str]], Awaitable[Any]]


def format_failure(error: BaseException, translation) -> str:
    """Build the failure message, adding rule context for rule-engine
    steps."""
    message = str(error) or error.__class__.__name__
    if isinstance(translation, RuleTranslation):
        params = "\n".join(f"  {k}: {v!r}" for k, v in translation.params.items()) or "  (none)"
        context = [
            f"Rule: {translation.matched_rule or '(unknown)'}",
            f"Pattern: {translation.matched_pattern}" if translation.matched_pattern else None,
            f"Params:\n{params}",
            f"Action:\n{translation.code}",
        ]
        message += "\n" + "\n".join(c for c in context if c)
    return message


class StepExecutor:
    """Compiles, runs, times and records scenario steps.

    ``execute_step`` never raises for a failing step: the failure is
    returned as a ``StepResult`` with ``success=False`` and appended to
    ``execution_history``.
    """

    def __init__(
        self,
        translator: Optional[Translator] = None,
        session_provider: Optional[SessionProvider] = None,
        strict_mode: Optional[bool] = None,
        workflow: Optional[str] = None,
    ):
        self.translator = translator or Translator(strict_mode=strict_mode)
        self.session_provider = session_provider
        self.current_workflow = workflow
        self.execution_history: List[ExecutionRecord] = []

    def compile_step(self, step: Union[Step, str], workflow: Optional[str] = None) -> CompiledStep:
        if isinstance(step, str):
            step = Step(action=step)
        translation = self.translator.translate(step.action, expand=not step.env_expanded)
        return CompiledStep(
            translation=translation,
            action=step.action,
            comment=step.comment,
            is_multiline=step.is_multiline,
            workflow=workflow or step.workflow or self.current_workflow,
        )

    async def _get_session(self, workflow: Optional[str]):
        if self.session_provider is None:
            raise ActionError("No automation session provider configured")
        return await self.session_provider(workflow)

    async def execute_compiled_step(self, compiled: CompiledStep) -> StepResult:
        translation = compiled.translation
        workflow = compiled.workflow
        start = time.perf_counter()

        try:
            session = await self._get_session(workflow)
            executor = ActionExecutor(session)
            if isinstance(translation, RuleTranslation):
                result = await executor.execute(translation.code)
            else:
                result = await executor.run_agent(translation.action)
        except Exception as e:
            duration = int((time.perf_counter() - start) * 1000)
            detailed_message = format_failure(e, translation)
            logging.error(f"Step failed ({duration}ms): {compiled.action}\n{detailed_message}")
            self._record(compiled.action, translation.type, False, duration, workflow, error=detailed_message)
            return StepResult(
                success=False, action=compiled.action, type=translation.type, error=detailed_message,
                duration=duration, workflow=workflow, is_multiline=compiled.is_multiline,
            )

        duration = int((time.perf_counter() - start) * 1000)
        logging.info(f"Step passed ({duration}ms): {compiled.action}")
        self._record(compiled.action, translation.type, True, duration, workflow)
        return StepResult(
            success=True, action=compiled.action, type=translation.type, result=result,
            duration=duration, workflow=workflow, is_multiline=compiled.is_multiline,
        )

    async def execute_step(self, step: Union[Step, str], workflow: Optional[str] = None) -> StepResult:
        try:
            compiled = self.compile_step(step, workflow=workflow)
        except TranslationValidationError as e:
            action = step if isinstance(step, str) else step.action
            workflow = workflow or getattr(step, "workflow", None) or self.current_workflow
            logging.error(f"Step rejected by strict validation: {action}\n{e}")
            self._record(action, e.action_type, False, 0, workflow, error=str(e))
            return StepResult(
                success=False, action=action, type=e.action_type, error=str(e), duration=0, workflow=workflow,
            )
        return await self.execute_compiled_step(compiled)

    def _record(self, action, action_type, success, duration, workflow, error=None):
        self.execution_history.append(
            ExecutionRecord(
                action=action, type=action_type, success=success, duration=duration,
                error=error, workflow=workflow,
            )
        )
