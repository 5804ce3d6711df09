import asyncio
import json
import logging
import os
import shutil
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import html2text
from playwright.async_api import Page

from textqa_agent.browser.config import DEFAULT_CONFIG
from textqa_agent.browser.driver import Driver
from textqa_agent.errors import ActionError
from textqa_agent.llm.llm_api import LLMAPI
from textqa_agent.llm.prompt import LLMPrompt

MAX_PAGE_TEXT = 6000
MAX_AGENT_STEPS = 10

# Tags every visible interactive element with a stable data attribute and
# describes it for the model.
COLLECT_ELEMENTS_JS = """
() => Array.from(document.querySelectorAll(
    'a, button, input, select, textarea, [role=button], [role=link], [onclick]'
)).filter(el => el.offsetParent !== null).slice(0, 200).map((el, i) => {
    el.setAttribute('data-textqa-id', String(i));
    return {
        selector: `[data-textqa-id="${i}"]`,
        tag: el.tagName.toLowerCase(),
        type: el.getAttribute('type') || '',
        text: (el.innerText || el.value || el.placeholder || el.getAttribute('aria-label') || '').trim().slice(0, 80),
    };
})
"""


class AutomationSession(ABC):
    """What a step needs from the browser side: natural-language act and
    extract, plus a free-form agent mode."""

    page: Optional[Page] = None

    @abstractmethod
    async def act(self, instruction: str) -> Any:
        """Perform one natural-language instruction on the page."""

    @abstractmethod
    async def extract(self, instruction: str) -> Any:
        """Return data described by ``instruction`` from the page."""

    async def agent(self, instruction: str) -> Any:
        return await self.act(instruction)

    async def close(self):
        pass


class BrowserSession:
    """Browser lifecycle for one workflow."""

    def __init__(self, session_id: str = None, browser_config: Dict[str, Any] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.browser_config = {**DEFAULT_CONFIG, **(browser_config or {})}
        self.driver: Optional[Driver] = None
        self._is_closed = False
        self._lock = asyncio.Lock()

    async def initialize(self):
        async with self._lock:
            if self._is_closed:
                raise RuntimeError("Browser session is closed")

            logging.debug(f"Initializing browser session {self.session_id} with config: {self.browser_config}")
            try:
                self.driver = await Driver.getInstance(browser_config=self.browser_config)
                logging.debug(f"Browser session {self.session_id} initialized successfully via Driver")
            except Exception as e:
                logging.error(f"Failed to initialize browser session {self.session_id}: {e}")
                await self._cleanup()
                raise
        return self

    def get_page(self) -> Page:
        if self._is_closed or not self.driver:
            raise RuntimeError("Browser session not initialized or closed")
        return self.driver.get_page()

    async def _cleanup(self):
        try:
            if self.driver and not self.driver.is_closed():
                await self.driver.close_browser()
        except Exception as e:
            logging.error(f"Error during cleanup: {e}")
        finally:
            self.driver = None

    async def close(self):
        async with self._lock:
            if self._is_closed:
                return
            logging.info(f"Closing browser session {self.session_id}")
            self._is_closed = True
            await self._cleanup()


class BrowserAutomationSession(AutomationSession):
    """AutomationSession backed by Playwright and an OpenAI-compatible
    model.

    Planned actions are cached per workflow under ``cache_dir`` keyed by
    URL and instruction, so a rerun can skip the model when the cached
    element is still on the page.
    """

    def __init__(self, browser_session: BrowserSession, llm: LLMAPI, cache_dir: Optional[str] = None,
                 max_agent_steps: int = MAX_AGENT_STEPS):
        self.browser_session = browser_session
        self.llm = llm
        self.cache_dir = cache_dir
        self.max_agent_steps = max_agent_steps
        self._action_cache = self._load_action_cache()
        self._text_maker = html2text.HTML2Text()
        self._text_maker.ignore_images = True
        self._text_maker.body_width = 0

    @property
    def page(self) -> Page:
        return self.browser_session.get_page()

    @property
    def _cache_file(self) -> Optional[str]:
        return os.path.join(self.cache_dir, "actions.json") if self.cache_dir else None

    def _load_action_cache(self) -> Dict[str, Dict[str, Any]]:
        if not self._cache_file or not os.path.isfile(self._cache_file):
            return {}
        try:
            with open(self._cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logging.warning(f"Ignoring unreadable action cache {self._cache_file}: {e}")
            return {}

    def _save_action_cache(self):
        if not self._cache_file:
            return
        os.makedirs(self.cache_dir, exist_ok=True)
        with open(self._cache_file, "w", encoding="utf-8") as f:
            json.dump(self._action_cache, f, indent=2, ensure_ascii=False)

    async def _page_context(self) -> Dict[str, str]:
        page = self.page
        elements = await page.evaluate(COLLECT_ELEMENTS_JS)
        element_lines = "\n".join(
            f"{e['selector']} <{e['tag']}{' type=' + e['type'] if e['type'] else ''}> {e['text']}" for e in elements
        )
        page_text = self._text_maker.handle(await page.content())[:MAX_PAGE_TEXT]
        return {"url": page.url, "elements": element_lines or "(none)", "page_text": page_text}

    async def _perform(self, plan: Dict[str, Any]) -> Dict[str, Any]:
        page = self.page
        action = (plan.get("action") or "").lower()
        selector = plan.get("selector")
        value = plan.get("value")

        if action == "fail":
            raise ActionError(f"Automation could not perform the instruction: {plan.get('reason', 'no reason given')}")
        if action == "done":
            return {"success": True, "message": plan.get("reason", "Nothing to do.")}
        if action in ("click", "fill", "hover", "select") and not selector:
            raise ActionError(f"Planned '{action}' without a selector")

        if action == "click":
            await page.click(selector)
        elif action == "fill":
            await page.fill(selector, "" if value is None else str(value))
        elif action == "hover":
            await page.hover(selector)
        elif action == "select":
            await page.select_option(selector, label=str(value))
        elif action == "press":
            if selector:
                await page.press(selector, str(value))
            else:
                await page.keyboard.press(str(value))
        elif action == "goto":
            await page.goto(str(value))
        elif action == "scroll":
            await page.mouse.wheel(0, -600 if value == "up" else 600)
        else:
            raise ActionError(f"Unknown planned action: {action}")
        return {"success": True, "message": f"{action} performed.", "plan": plan}

    async def act(self, instruction: str) -> Any:
        key = f"{self.page.url}|{instruction}"
        cached = self._action_cache.get(key)
        if cached and cached.get("selector"):
            if await self.page.locator(cached["selector"]).count() > 0:
                logging.debug(f"Replaying cached action for: {instruction}")
                return await self._perform(cached)

        context = await self._page_context()
        prompt = f"instruction: {instruction}\n\n" + LLMPrompt.page_context_template.format(**context)
        plan = await self.llm.get_json_response(LLMPrompt.act_system_prompt, prompt)
        result = await self._perform(plan)
        if plan.get("action") not in ("done", "fail"):
            self._action_cache[key] = plan
            self._save_action_cache()
        return result

    async def extract(self, instruction: str) -> Any:
        context = await self._page_context()
        prompt = (
            f"instruction: {instruction}\n\n"
            f"url: {context['url']}\n\npage_text:\n{context['page_text']}"
        )
        answer = await self.llm.get_json_response(LLMPrompt.extract_system_prompt, prompt)
        if not answer.get("found", False):
            raise ActionError(f"Could not extract from page: {instruction}")
        return answer.get("data")

    async def agent(self, instruction: str) -> Any:
        history: List[Dict[str, Any]] = []
        for _ in range(self.max_agent_steps):
            context = await self._page_context()
            prompt = (
                f"goal: {instruction}\n\nhistory:\n{json.dumps(history, ensure_ascii=False)}\n\n"
                + LLMPrompt.page_context_template.format(**context)
            )
            plan = await self.llm.get_json_response(LLMPrompt.agent_system_prompt, prompt)
            if (plan.get("action") or "").lower() == "done":
                return {"success": True, "message": plan.get("reason", "Goal reached."), "steps": history}
            await self._perform(plan)
            history.append(plan)
        raise ActionError(f"Agent did not reach the goal within {self.max_agent_steps} steps: {instruction}")

    async def close(self):
        try:
            await self.llm.close()
        finally:
            await self.browser_session.close()


class BrowserSessionManager:
    """One automation session per workflow, created on first use."""

    def __init__(self, browser_config: Dict[str, Any] = None, llm_config: Dict[str, Any] = None,
                 cache_base_dir: Optional[str] = None):
        self.browser_config = browser_config
        self.llm_config = llm_config or {}
        self.cache_base_dir = os.path.abspath(cache_base_dir or os.environ.get("TEXTQA_CACHE_DIR") or "cache")
        self.sessions: Dict[str, AutomationSession] = {}
        self._lock = asyncio.Lock()
        os.makedirs(self.cache_base_dir, exist_ok=True)

    async def get_session_for_workflow(self, workflow: Optional[str]) -> AutomationSession:
        workflow = workflow or "default-flow"
        async with self._lock:
            session = self.sessions.get(workflow)
            if session is not None:
                return session

            logging.info(f"Initializing automation session for workflow: {workflow}")
            browser_session = await BrowserSession(browser_config=self.browser_config).initialize()
            llm = LLMAPI(self.llm_config)
            session = BrowserAutomationSession(
                browser_session, llm, cache_dir=os.path.join(self.cache_base_dir, workflow)
            )
            self.sessions[workflow] = session
            logging.info(f"Automation session ready: {workflow}")
            return session

    async def __call__(self, workflow: Optional[str]) -> AutomationSession:
        return await self.get_session_for_workflow(workflow)

    def clear_cache(self, workflow: str):
        cache_dir = os.path.join(self.cache_base_dir, workflow)
        if os.path.isdir(cache_dir):
            shutil.rmtree(cache_dir)
            logging.info(f"Cleared cache: {workflow}")

    def clear_all_cache(self):
        if os.path.isdir(self.cache_base_dir):
            shutil.rmtree(self.cache_base_dir)
        os.makedirs(self.cache_base_dir, exist_ok=True)
        logging.info("Cleared all caches")

    def get_cache_stats(self) -> Dict[str, Dict[str, Any]]:
        stats = {}
        if not os.path.isdir(self.cache_base_dir):
            return stats
        for workflow in sorted(os.listdir(self.cache_base_dir)):
            workflow_dir = os.path.join(self.cache_base_dir, workflow)
            if not os.path.isdir(workflow_dir):
                continue
            total_size = 0
            file_count = 0
            for root, _, files in os.walk(workflow_dir):
                for name in files:
                    total_size += os.path.getsize(os.path.join(root, name))
                    file_count += 1
            stats[workflow] = {"cached_files": file_count, "total_size": f"{total_size / 1024 / 1024:.2f} MB"}
        return stats

    async def close_all_sessions(self):
        async with self._lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()

        if sessions:
            await asyncio.gather(*[session.close() for session in sessions], return_exceptions=True)
            logging.info(f"Closed {len(sessions)} automation sessions")
