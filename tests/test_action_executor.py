import pytest

from textqa_agent.actions.action_executor import ActionExecutor, parse_action_lines
from textqa_agent.errors import ActionError, AssertionFailedError


def test_parse_action_lines():
    code = "goto: https://a.test\n\n  fill: #email => bob@a.test  \nact: click the save button"
    assert parse_action_lines(code) == [
        ("goto", "https://a.test"),
        ("fill", "#email => bob@a.test"),
        ("act", "click the save button"),
    ]


@pytest.mark.parametrize("code", ["", "   \n", "click the button", ": no verb"])
def test_parse_action_lines_rejects_malformed(code):
    with pytest.raises(ActionError):
        parse_action_lines(code)


@pytest.mark.asyncio
async def test_act_and_extract_go_to_session(fake_session):
    executor = ActionExecutor(fake_session)
    assert await executor.execute("act: click login") == {"success": True, "message": "did click login"}
    assert await executor.execute("extract: the page title") == {"title": "Example"}
    assert fake_session.instructions == [("act", "click login"), ("extract", "the page title")]


@pytest.mark.asyncio
async def test_multi_line_action_returns_last_result(fake_session):
    executor = ActionExecutor(fake_session)
    result = await executor.execute("goto: https://a.test/login\nfill: #user => alice\npress: Enter\nextract: greeting")
    assert result == {"title": "Example"}
    assert fake_session.page.calls == [
        ("goto", "https://a.test/login"),
        ("fill", "#user", "alice"),
        ("keyboard.press", "Enter"),
    ]


@pytest.mark.asyncio
async def test_press_on_selector(fake_session):
    await ActionExecutor(fake_session).execute("press: #search => Enter")
    assert fake_session.page.calls == [("press", "#search", "Enter")]


@pytest.mark.asyncio
async def test_click_selector(fake_session):
    await ActionExecutor(fake_session).execute("click: text=Sign in")
    assert fake_session.page.calls == [("click", "text=Sign in")]


@pytest.mark.asyncio
async def test_wait_accepts_milliseconds(fake_session):
    result = await ActionExecutor(fake_session).execute("wait: 1")
    assert result["success"]


@pytest.mark.asyncio
async def test_wait_rejects_non_numeric(fake_session):
    with pytest.raises(ActionError):
        await ActionExecutor(fake_session).execute("wait: soon")


@pytest.mark.asyncio
async def test_unknown_verb(fake_session):
    with pytest.raises(ActionError, match="Unknown action type: dance"):
        await ActionExecutor(fake_session).execute("dance: now")


@pytest.mark.asyncio
async def test_fill_requires_two_arguments(fake_session):
    with pytest.raises(ActionError):
        await ActionExecutor(fake_session).execute("fill: #email")


@pytest.mark.asyncio
async def test_assertions(fake_session):
    fake_session.page.body_text = "Welcome back, alice"
    fake_session.page.url = "https://a.test/dashboard"
    executor = ActionExecutor(fake_session)
    await executor.execute("assert_text: Welcome back\nassert_url: /dashboard")

    with pytest.raises(AssertionFailedError):
        await executor.execute("assert_text: Goodbye")
    with pytest.raises(AssertionFailedError):
        await executor.execute("assert_url: /login")


@pytest.mark.asyncio
async def test_page_verbs_need_a_page(fake_session):
    fake_session.page = None
    with pytest.raises(ActionError, match="no page"):
        await ActionExecutor(fake_session).execute("goto: https://a.test")


@pytest.mark.asyncio
async def test_run_agent(fake_session):
    await ActionExecutor(fake_session).run_agent("find the cheapest item")
    assert fake_session.instructions == [("agent", "find the cheapest item")]
