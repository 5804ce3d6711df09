from textqa_agent.translator.compiler import PLACEHOLDER_RE
from textqa_agent.translator.renderer import infer_action_type, render_template


def test_placeholders_are_replaced():
    code = render_template('act: type "{value}" into the {target}', {"value": "bob", "target": "name"})
    assert code == 'act: type "bob" into the name'


def test_missing_placeholder_stays_literal():
    assert render_template("goto: {url}", {}) == "goto: {url}"
    assert render_template("goto: {url}", {"url": None}) == "goto: {url}"


def test_empty_value_is_substituted():
    assert render_template("fill: #q => {value}", {"value": ""}) == "fill: #q => "


def test_values_are_inserted_verbatim():
    assert render_template("act: {x}", {"x": r"a\1 {y}"}) == r"act: a\1 {y}"


def test_rendering_with_required_params_leaves_no_placeholders():
    template = "fill: {selector} => {value}\npress: Enter"
    code = render_template(template, {"selector": "#q", "value": "shoes"})
    assert not PLACEHOLDER_RE.search(code)


def test_empty_template_renders_empty():
    assert render_template("", {"a": "b"}) == ""
    assert render_template(None, {}) == ""


def test_infer_action_type():
    assert infer_action_type("extract: the page title") == "extract"
    assert infer_action_type("goto: {url}\nextract: prices") == "extract"
    assert infer_action_type("act: click {target}") == "act"
    assert infer_action_type("act: extract the name") == "act"
    assert infer_action_type("") == "act"
