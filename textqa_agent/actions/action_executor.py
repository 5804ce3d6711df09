import asyncio
import logging
from typing import Any, List, Tuple

from textqa_agent.errors import ActionError, AssertionFailedError

ARG_SEPARATOR = " => "


def parse_action_lines(code: str) -> List[Tuple[str, str]]:
    """Split a rendered action string into ``(verb, argument)`` pairs."""
    actions = []
    for raw in code.splitlines():
        line = raw.strip()
        if not line:
            continue
        verb, sep, argument = line.partition(":")
        if not sep or not verb.strip():
            raise ActionError(f"Malformed action line, expected 'verb: argument': {line}")
        actions.append((verb.strip().lower(), argument.strip()))
    if not actions:
        raise ActionError("Empty action")
    return actions


class ActionExecutor:
    """Runs rendered action strings against an automation session.

    Each line is ``verb: argument``; two-argument verbs separate their
    arguments with ``=>``. Lines run in order and the last line's result
    is returned. Any failure raises, so the caller can record it.
    """

    def __init__(self, session):
        self._session = session
        self._action_map = {
            "act": self._execute_act,
            "extract": self._execute_extract,
            "agent": self._execute_agent,
            "goto": self._execute_goto,
            "click": self._execute_click,
            "fill": self._execute_fill,
            "press": self._execute_press,
            "wait": self._execute_wait,
            "assert_text": self._execute_assert_text,
            "assert_url": self._execute_assert_url,
        }

    async def execute(self, code: str) -> Any:
        result = None
        for verb, argument in parse_action_lines(code):
            execute_func = self._action_map.get(verb)
            if not execute_func:
                raise ActionError(f"Unknown action type: {verb}")
            logging.debug(f"Executing action: {verb}: {argument}")
            result = await execute_func(argument)
        return result

    async def run_agent(self, instruction: str) -> Any:
        return await self._execute_agent(instruction)

    def _page(self):
        page = getattr(self._session, "page", None)
        if page is None:
            raise ActionError("Automation session has no page for direct browser actions")
        return page

    @staticmethod
    def _split_args(argument: str, verb: str) -> Tuple[str, str]:
        first, sep, second = argument.partition(ARG_SEPARATOR.strip())
        if not sep:
            raise ActionError(f"'{verb}' expects two arguments separated by '=>': {argument}")
        return first.strip(), second.strip()

    @staticmethod
    def _require(argument: str, verb: str) -> str:
        if not argument:
            raise ActionError(f"'{verb}' requires an argument")
        return argument

    async def _execute_act(self, argument):
        return await self._session.act(self._require(argument, "act"))

    async def _execute_extract(self, argument):
        return await self._session.extract(self._require(argument, "extract"))

    async def _execute_agent(self, argument):
        return await self._session.agent(self._require(argument, "agent"))

    async def _execute_goto(self, argument):
        url = self._require(argument, "goto")
        await self._page().goto(url)
        return {"success": True, "message": f"Navigated to {url}."}

    async def _execute_click(self, argument):
        selector = self._require(argument, "click")
        await self._page().click(selector)
        return {"success": True, "message": f"Clicked {selector}."}

    async def _execute_fill(self, argument):
        selector, value = self._split_args(argument, "fill")
        await self._page().fill(selector, value)
        return {"success": True, "message": f"Filled {selector}."}

    async def _execute_press(self, argument):
        argument = self._require(argument, "press")
        if ARG_SEPARATOR.strip() in argument:
            selector, key = self._split_args(argument, "press")
            await self._page().press(selector, key)
        else:
            key = argument
            await self._page().keyboard.press(key)
        return {"success": True, "message": f"Pressed {key}."}

    async def _execute_wait(self, argument):
        try:
            time_ms = float(self._require(argument, "wait"))
        except ValueError:
            raise ActionError(f"'wait' expects milliseconds, got: {argument}")
        await asyncio.sleep(time_ms / 1000)
        return {"success": True, "message": f"Slept for {time_ms:g}ms."}

    async def _execute_assert_text(self, argument):
        expected = self._require(argument, "assert_text")
        body_text = await self._page().inner_text("body")
        if expected not in body_text:
            raise AssertionFailedError(f"Expected page text to contain: {expected}")
        return {"success": True, "message": f"Found text: {expected}"}

    async def _execute_assert_url(self, argument):
        expected = self._require(argument, "assert_url")
        current_url = self._page().url
        if expected not in current_url:
            raise AssertionFailedError(f"Expected URL to contain '{expected}', got '{current_url}'")
        return {"success": True, "message": f"URL contains: {expected}"}
