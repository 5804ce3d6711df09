import pytest

from textqa_agent.errors import ConfigurationError
from textqa_agent.translator import build_rule_set, check_rules_files, validate_rules_config
from textqa_agent.translator.compiler import PatternCompiler


def test_non_mapping_document_is_rejected():
    assert validate_rules_config(["a"]) == ["rules document is not a mapping"]


@pytest.mark.parametrize("doc", [{}, {"rules": []}, {"rules": "click"}])
def test_missing_or_empty_rules_list(doc):
    assert validate_rules_config(doc) == ["missing 'rules' list or it is empty"]


def test_every_violation_is_reported_at_once():
    doc = {
        "rules": [
            "not a mapping",
            {"name": "", "patterns": ["a~{b}"]},
            {"name": "no_patterns"},
            {"name": "bad_template", "patterns": ["x"], "template": 3},
            {"name": "bad_required", "patterns": ["x"], "validation": {"required": "url"}},
        ]
    }
    errors = validate_rules_config(doc)
    assert errors == [
        "rule 0: must be a mapping",
        "rule 1: name must be a non-empty string",
        "rule 2 (no_patterns): patterns must be a non-empty list",
        "rule 3 (bad_template): template must be a string",
        "rule 4 (bad_required): validation.required must be a list of strings",
    ]


def test_valid_document_has_no_errors(rules_config):
    assert validate_rules_config(rules_config) == []


def test_unsupported_delimiter_is_reported_and_tilde_used(rules_config):
    rule_set = build_rule_set(rules_config, {"translation": {"segment_delimiter": "/"}})
    assert rule_set.delimiter == "~"
    assert any("Unsupported segment delimiter" in e for e in rule_set.errors)
    assert len(rule_set.rules) == len(rules_config["rules"])


def test_param_pattern_that_does_not_compile_skips_rule():
    rules = {"rules": [{"name": "open", "patterns": ["open~{url}"], "template": "goto: {url}"}]}
    rule_set = build_rule_set(rules, {"translation": {"param_patterns": {"url": "(unclosed"}}})
    assert rule_set.agent_only
    assert any("does not compile" in e for e in rule_set.errors)


def test_compiler_rejects_inactive_delimiter():
    with pytest.raises(ConfigurationError) as exc_info:
        PatternCompiler().compile("open|{url}")
    assert "segment_delimiter is '~'" in exc_info.value.errors[0]


def test_check_rules_files_valid(tmp_path):
    core = tmp_path / "core.yaml"
    rules = tmp_path / "rules.yaml"
    core.write_text("translation:\n  segment_delimiter: '~'\n", encoding="utf-8")
    rules.write_text("rules:\n  - name: click\n    patterns: ['click~{target}']\n    template: 'act: click {target}'\n",
                     encoding="utf-8")
    assert check_rules_files(str(rules), str(core)) == []


def test_check_rules_files_reports_missing_files(tmp_path):
    errors = check_rules_files(str(tmp_path / "rules.yaml"), str(tmp_path / "core.yaml"))
    assert errors == [
        f"missing core config: {tmp_path / 'core.yaml'}",
        f"missing rules config: {tmp_path / 'rules.yaml'}",
    ]


def test_check_rules_files_reports_pattern_errors(tmp_path):
    core = tmp_path / "core.yaml"
    rules = tmp_path / "rules.yaml"
    core.write_text("translation:\n  segment_delimiter: '|'\n", encoding="utf-8")
    rules.write_text("rules:\n  - name: click\n    patterns: ['click~{target}']\n", encoding="utf-8")
    errors = check_rules_files(str(rules), str(core))
    assert len(errors) == 1
    assert "uses delimiter '~'" in errors[0]
