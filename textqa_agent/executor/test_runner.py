import logging
import time
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from textqa_agent.data import CaseResult, Step, StepResult, TestCase
from textqa_agent.executor.step_executor import StepExecutor
from textqa_agent.scenario.parser import ScenarioParser, determine_workflow


def shallow_summary(obj: Any, max_depth: int = 2) -> Any:
    """Reduce an arbitrary step result to JSON-friendly data of bounded
    depth.

    Containers past ``max_depth`` collapse to a short description.
    Callables are dropped.
    """
    if isinstance(obj, BaseModel):
        obj = obj.model_dump()
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        if max_depth <= 0:
            return f"[Object: {len(obj)} keys]"
        return {
            str(k): shallow_summary(v, max_depth - 1)
            for k, v in obj.items()
            if not callable(v)
        }
    if isinstance(obj, (list, tuple, set)):
        if max_depth <= 0:
            return f"[Array: {len(obj)} items]"
        return [shallow_summary(v, max_depth - 1) for v in obj if not callable(v)]
    return repr(obj)


class TextTestRunner:
    """Runs parsed test cases step by step.

    A test case stops at its first failing step. ``cancel()`` takes effect
    at the next step boundary; the step in flight always completes.
    """

    __test__ = False

    def __init__(
        self,
        step_executor: Optional[StepExecutor] = None,
        parser: Optional[ScenarioParser] = None,
        cache_dir: Optional[str] = None,
    ):
        self.step_executor = step_executor or StepExecutor()
        self.parser = parser or ScenarioParser()
        self.cache_dir = cache_dir
        self.results: List[CaseResult] = []
        self.current_test_case: Optional[str] = None
        self._cancelled = False

    def cancel(self):
        logging.warning("Run cancellation requested; stopping at the next step boundary")
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def parse_text_scenario(self, file_path: str, workflow: Optional[str] = None) -> List[TestCase]:
        workflow = workflow or determine_workflow(file_path, self.cache_dir)
        return self.parser.parse_file(file_path, workflow=workflow)

    async def execute_step(self, step: Step) -> StepResult:
        result = await self.step_executor.execute_step(step)
        if result.result is not None:
            result.result = shallow_summary(result.result)
        return result

    async def run_test_case(self, test_case: TestCase) -> CaseResult:
        self.current_test_case = test_case.name
        case_result = CaseResult(name=test_case.name)
        started = time.perf_counter()

        logging.info(f"Starting test case: {test_case.name}")
        for comment in test_case.comments:
            logging.info(f"  - {comment}")

        case_result.multiline_steps = sum(1 for step in test_case.steps if step.is_multiline)
        if case_result.multiline_steps:
            logging.info(f"Test case contains {case_result.multiline_steps} multiline step(s)")

        for step in test_case.steps:
            if self._cancelled:
                case_result.cancelled = True
                case_result.passed = False
                case_result.error = "Run cancelled"
                break

            step_result = await self.execute_step(step)
            case_result.steps.append(step_result)
            label = step.action if not step.is_multiline else step.action.splitlines()[0] + " ..."
            logging.info(f"  {'PASS' if step_result.success else 'FAIL'} {label}")

            if not step_result.success:
                case_result.passed = False
                case_result.error = step_result.error
                case_result.failed_step = step.action
                break

        case_result.duration = int((time.perf_counter() - started) * 1000)
        status = "passed" if case_result.passed else "failed"
        logging.info(f"Test case {status} ({case_result.duration}ms): {test_case.name}")
        if not case_result.passed and case_result.error:
            logging.error(f"Test case error: {case_result.error}")

        self.results.append(case_result)
        return case_result

    async def run_test_cases(self, test_cases: List[TestCase]) -> List[CaseResult]:
        results = []
        for test_case in test_cases:
            if self._cancelled:
                break
            results.append(await self.run_test_case(test_case))
        return results

    async def run_file(self, file_path: str) -> List[CaseResult]:
        workflow = determine_workflow(file_path, self.cache_dir)
        test_cases = self.parse_text_scenario(file_path, workflow)
        if not test_cases:
            logging.warning(f"No test cases found in {file_path}")
            return []
        self.step_executor.current_workflow = workflow
        return await self.run_test_cases(test_cases)

    def get_parse_stats(self) -> Dict[str, int]:
        return {
            "total_test_cases": len(self.results),
            "total_steps": sum(len(r.steps) for r in self.results),
            "total_multiline_steps": sum(r.multiline_steps for r in self.results),
            "passed_test_cases": sum(1 for r in self.results if r.passed),
            "failed_test_cases": sum(1 for r in self.results if not r.passed),
        }
