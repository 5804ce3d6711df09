import json

import pytest

from textqa_agent.browser import BrowserAutomationSession, BrowserSessionManager
from textqa_agent.errors import ActionError
from textqa_agent.llm.llm_api import LLMAPI


class FakeLocator:
    def __init__(self, count):
        self._count = count

    async def count(self):
        return self._count


class FakeBrowserPage:
    def __init__(self):
        self.url = "https://shop.test/"
        self.calls = []
        self.present = set()

    async def evaluate(self, script):
        return [{"selector": '[data-textqa-id="0"]', "tag": "button", "type": "", "text": "Buy"}]

    async def content(self):
        return "<html><body><h1>Shop</h1><p>Total: 42</p></body></html>"

    def locator(self, selector):
        return FakeLocator(1 if selector in self.present else 0)

    async def click(self, selector):
        self.calls.append(("click", selector))

    async def fill(self, selector, value):
        self.calls.append(("fill", selector, value))


class FakeBrowserSession:
    def __init__(self):
        self.page = FakeBrowserPage()
        self.closed = False

    def get_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeLLM:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []
        self.closed = False

    async def get_json_response(self, system_prompt, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_act_plans_with_model_and_caches_plan(tmp_path):
    plan = {"action": "click", "selector": '[data-textqa-id="0"]'}
    llm = FakeLLM(plan)
    browser = FakeBrowserSession()
    session = BrowserAutomationSession(browser, llm, cache_dir=str(tmp_path))

    result = await session.act("click buy")
    assert result["success"]
    assert browser.page.calls == [("click", '[data-textqa-id="0"]')]
    assert "Buy" in llm.prompts[0]
    assert "Total: 42" in llm.prompts[0]
    with open(tmp_path / "actions.json", encoding="utf-8") as f:
        assert json.load(f) == {"https://shop.test/|click buy": plan}


@pytest.mark.asyncio
async def test_act_replays_cached_plan_without_model(tmp_path):
    plan = {"action": "fill", "selector": "#q", "value": "shoes"}
    (tmp_path / "actions.json").write_text(json.dumps({"https://shop.test/|search shoes": plan}), encoding="utf-8")
    llm = FakeLLM()
    browser = FakeBrowserSession()
    browser.page.present.add("#q")

    await BrowserAutomationSession(browser, llm, cache_dir=str(tmp_path)).act("search shoes")
    assert browser.page.calls == [("fill", "#q", "shoes")]
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_act_fail_plan_raises():
    session = BrowserAutomationSession(FakeBrowserSession(), FakeLLM({"action": "fail", "reason": "no such button"}))
    with pytest.raises(ActionError, match="no such button"):
        await session.act("click the rocket")


@pytest.mark.asyncio
async def test_extract():
    llm = FakeLLM({"found": True, "data": {"total": 42}}, {"found": False})
    session = BrowserAutomationSession(FakeBrowserSession(), llm)
    assert await session.extract("the total") == {"total": 42}
    with pytest.raises(ActionError):
        await session.extract("the discount")


@pytest.mark.asyncio
async def test_agent_loops_until_done():
    llm = FakeLLM(
        {"action": "click", "selector": "#a"},
        {"action": "click", "selector": "#b"},
        {"action": "done", "reason": "checked out"},
    )
    browser = FakeBrowserSession()
    result = await BrowserAutomationSession(browser, llm).agent("check out")
    assert result["message"] == "checked out"
    assert len(result["steps"]) == 2
    assert browser.page.calls == [("click", "#a"), ("click", "#b")]


@pytest.mark.asyncio
async def test_agent_gives_up_after_max_steps():
    llm = FakeLLM(*[{"action": "click", "selector": "#a"}] * 2)
    session = BrowserAutomationSession(FakeBrowserSession(), llm, max_agent_steps=2)
    with pytest.raises(ActionError, match="within 2 steps"):
        await session.agent("loop forever")


@pytest.mark.asyncio
async def test_close_releases_model_and_browser():
    browser, llm = FakeBrowserSession(), FakeLLM()
    await BrowserAutomationSession(browser, llm).close()
    assert browser.closed and llm.closed


def test_cache_stats_and_clear(tmp_path):
    manager = BrowserSessionManager(cache_base_dir=str(tmp_path))
    (tmp_path / "login-flow").mkdir()
    (tmp_path / "login-flow" / "actions.json").write_text("{}", encoding="utf-8")
    (tmp_path / "cart-flow").mkdir()

    stats = manager.get_cache_stats()
    assert stats["login-flow"]["cached_files"] == 1
    assert stats["cart-flow"]["cached_files"] == 0

    manager.clear_cache("login-flow")
    assert list(manager.get_cache_stats()) == ["cart-flow"]

    manager.clear_all_cache()
    assert manager.get_cache_stats() == {}
    assert tmp_path.is_dir()


@pytest.mark.asyncio
async def test_manager_reuses_session_per_workflow(tmp_path):
    manager = BrowserSessionManager(cache_base_dir=str(tmp_path))
    existing = BrowserAutomationSession(FakeBrowserSession(), FakeLLM())
    manager.sessions["login-flow"] = existing
    assert await manager("login-flow") is existing

    await manager.close_all_sessions()
    assert manager.sessions == {}
    assert existing.browser_session.closed


@pytest.mark.parametrize(
    "raw, cleaned",
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  {"a": 1} ', '{"a": 1}'),
    ],
)
def test_llm_response_cleaning(raw, cleaned):
    assert LLMAPI({})._clean_response(raw) == cleaned
