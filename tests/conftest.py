from typing import Any, Dict, List

import pytest

from textqa_agent.browser.session import AutomationSession
from textqa_agent.translator import Translator


class FakeKeyboard:
    def __init__(self, page):
        self._page = page

    async def press(self, key):
        self._page.calls.append(("keyboard.press", key))


class FakePage:
    """Records the Playwright calls an action string makes."""

    def __init__(self, url="https://example.com/", body_text=""):
        self.url = url
        self.body_text = body_text
        self.calls: List[tuple] = []
        self.keyboard = FakeKeyboard(self)

    async def goto(self, url):
        self.calls.append(("goto", url))
        self.url = url

    async def click(self, selector):
        self.calls.append(("click", selector))

    async def fill(self, selector, value):
        self.calls.append(("fill", selector, value))

    async def press(self, selector, key):
        self.calls.append(("press", selector, key))

    async def inner_text(self, selector):
        return self.body_text


class FakeSession(AutomationSession):
    """Automation session double: records instructions, optionally fails."""

    def __init__(self, fail_with: Exception = None, extract_result: Any = None):
        self.page = FakePage()
        self.instructions: List[tuple] = []
        self.fail_with = fail_with
        self.extract_result = extract_result if extract_result is not None else {"title": "Example"}

    async def act(self, instruction):
        self.instructions.append(("act", instruction))
        if self.fail_with:
            raise self.fail_with
        return {"success": True, "message": f"did {instruction}"}

    async def extract(self, instruction):
        self.instructions.append(("extract", instruction))
        if self.fail_with:
            raise self.fail_with
        return self.extract_result

    async def agent(self, instruction):
        self.instructions.append(("agent", instruction))
        if self.fail_with:
            raise self.fail_with
        return {"success": True}


@pytest.fixture
def rules_config() -> Dict[str, Any]:
    return {
        "rules": [
            {
                "name": "open_url",
                "patterns": ["open~{url}", "go to~{url}"],
                "template": "goto: {url}",
                "validation": {"required": ["url"]},
            },
            {
                "name": "fill_field",
                "patterns": ['type~"{value}"~into~{target}'],
                "template": 'act: type "{value}" into {target}',
                "validation": {"required": ["target", "value"]},
            },
            {
                "name": "extract",
                "patterns": ["extract~{what}"],
                "template": "extract: {what}",
                "validation": {"required": ["what"]},
            },
            {
                "name": "click",
                "patterns": ["click~{target}"],
                "template": "act: click {target}",
            },
        ]
    }


@pytest.fixture
def core_config() -> Dict[str, Any]:
    return {
        "translation": {
            "segment_delimiter": "~",
            "strict_mode": False,
            "param_patterns": {"url": "^https?://\\S+$"},
        }
    }


@pytest.fixture
def env() -> Dict[str, str]:
    return {"BASE_URL": "https://shop.test", "USER": "alice"}


@pytest.fixture
def translator(rules_config, core_config, env) -> Translator:
    return Translator(rules_config=rules_config, core_config=core_config, env=env)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
