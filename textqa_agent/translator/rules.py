import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from textqa_agent.data import Rule
from textqa_agent.errors import ConfigurationError
from textqa_agent.translator.compiler import TILDE, PatternCompiler
from textqa_agent.translator.matcher import CompiledRule, RuleMatcher, compile_rule
from textqa_agent.utils.config import load_yaml_file


class RuleSet(NamedTuple):
    """Everything the translator needs for one configuration generation.

    Built completely before it is published, never mutated afterwards.
    """

    rules: Tuple[Rule, ...]
    matcher: RuleMatcher
    param_patterns: Dict[str, str]
    delimiter: str
    strict_mode: bool
    errors: Tuple[str, ...]

    @property
    def agent_only(self) -> bool:
        return not self.rules


def validate_rule_entry(index: int, raw: Any) -> List[str]:
    """Structural checks for one entry of the ``rules`` list."""
    if not isinstance(raw, dict):
        return [f"rule {index}: must be a mapping"]

    errors = []
    label = f"rule {index}"
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(f"{label}: name must be a non-empty string")
    else:
        label = f"rule {index} ({name})"

    patterns = raw.get("patterns")
    if not isinstance(patterns, list) or not patterns:
        errors.append(f"{label}: patterns must be a non-empty list")
    elif not all(isinstance(p, str) and p.strip() for p in patterns):
        errors.append(f"{label}: every pattern must be a non-empty string")

    template = raw.get("template", "")
    if template is not None and not isinstance(template, str):
        errors.append(f"{label}: template must be a string")

    validation = raw.get("validation") or {}
    if not isinstance(validation, dict):
        errors.append(f"{label}: validation must be a mapping")
    else:
        required = validation.get("required", [])
        if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
            errors.append(f"{label}: validation.required must be a list of strings")
    return errors


def validate_rules_config(obj: Any) -> List[str]:
    """Return every structural violation in a parsed rules document."""
    if not isinstance(obj, dict):
        return ["rules document is not a mapping"]
    rules = obj.get("rules")
    if not isinstance(rules, list) or not rules:
        return ["missing 'rules' list or it is empty"]

    errors = []
    for i, raw in enumerate(rules):
        errors.extend(validate_rule_entry(i, raw))
    return errors


def rule_from_config(raw: Dict[str, Any]) -> Rule:
    validation = raw.get("validation") or {}
    return Rule(
        name=raw["name"].strip(),
        patterns=tuple(raw["patterns"]),
        template=raw.get("template") or "",
        required_params=frozenset(validation.get("required") or []),
    )


def translation_settings(core_cfg: Any) -> Dict[str, Any]:
    if not isinstance(core_cfg, dict):
        return {}
    section = core_cfg.get("translation") or {}
    return section if isinstance(section, dict) else {}


def build_rule_set(
    rules_cfg: Any,
    core_cfg: Any = None,
    strict_mode: Optional[bool] = None,
    delimiter: Optional[str] = None,
) -> RuleSet:
    """Validate and compile a rules document into a RuleSet.

    Invalid rules are skipped and reported in ``RuleSet.errors``; the
    remaining rules stay usable. With no valid rule the set is agent-only.
    """
    settings = translation_settings(core_cfg)
    errors: List[str] = []

    param_patterns = settings.get("param_patterns") or {}
    if not isinstance(param_patterns, dict):
        errors.append("translation.param_patterns must be a mapping")
        param_patterns = {}

    delimiter = delimiter or settings.get("segment_delimiter") or TILDE
    try:
        compiler = PatternCompiler(param_patterns, delimiter=delimiter)
    except ConfigurationError as e:
        errors.extend(e.errors)
        delimiter = TILDE
        compiler = PatternCompiler(param_patterns, delimiter=delimiter)

    if strict_mode is None:
        strict_mode = bool(settings.get("strict_mode", False))

    compiled_rules: List[CompiledRule] = []
    if rules_cfg is not None:
        raw_rules = rules_cfg.get("rules") if isinstance(rules_cfg, dict) else None
        if not isinstance(raw_rules, list) or not raw_rules:
            errors.extend(validate_rules_config(rules_cfg))
            raw_rules = []

        seen_names = set()
        for i, raw in enumerate(raw_rules):
            entry_errors = validate_rule_entry(i, raw)
            if entry_errors:
                errors.extend(entry_errors)
                continue
            rule = rule_from_config(raw)
            pattern_errors = [f"rule {i} ({rule.name}): {msg}" for p in rule.patterns for msg in compiler.validate(p)]
            if pattern_errors:
                errors.extend(pattern_errors)
                continue
            try:
                compiled_rules.append(compile_rule(rule, compiler))
            except ConfigurationError as e:
                errors.extend(f"rule {i} ({rule.name}): {msg}" for msg in e.errors)
                continue
            if rule.name in seen_names:
                logging.warning(f"Rule name '{rule.name}' is declared more than once; the first declaration wins ties")
            seen_names.add(rule.name)

    rule_set = RuleSet(
        rules=tuple(c.rule for c in compiled_rules),
        matcher=RuleMatcher(compiled_rules),
        param_patterns=dict(compiler.param_patterns),
        delimiter=delimiter,
        strict_mode=strict_mode,
        errors=tuple(errors),
    )
    if errors:
        logging.error("Translation rule configuration problems:\n - " + "\n - ".join(errors))
    if rule_set.agent_only:
        logging.warning("No valid translation rules loaded; every step runs in agent mode")
    return rule_set


def load_rule_set(
    rules_path: str,
    core_path: Optional[str] = None,
    strict_mode: Optional[bool] = None,
    delimiter: Optional[str] = None,
) -> RuleSet:
    """Read rules and core configuration from YAML files and build a
    RuleSet.

    Unreadable files are reported as configuration errors rather than
    raised.
    """
    errors = []
    core_cfg = None
    if core_path:
        try:
            core_cfg = load_yaml_file(core_path)
        except Exception as e:
            errors.append(f"core config {core_path} is invalid: {e}")

    rules_cfg = None
    try:
        rules_cfg = load_yaml_file(rules_path)
        if rules_cfg is None:
            logging.warning(f"Translation rules file not found: {rules_path}")
    except Exception as e:
        errors.append(f"rules config {rules_path} is invalid: {e}")

    rule_set = build_rule_set(rules_cfg, core_cfg, strict_mode=strict_mode, delimiter=delimiter)
    if errors:
        logging.error("Translation configuration files could not be read:\n - " + "\n - ".join(errors))
        rule_set = rule_set._replace(errors=tuple(errors) + rule_set.errors)
    return rule_set


def check_rules_files(rules_path: str, core_path: Optional[str] = None) -> List[str]:
    """Validate both configuration files, raising nothing.

    Returns the full list of violations, empty when the configuration is
    valid.
    """
    errors = []
    core_cfg = None
    if core_path:
        try:
            core_cfg = load_yaml_file(core_path)
            if core_cfg is None:
                errors.append(f"missing core config: {core_path}")
        except Exception as e:
            errors.append(f"core config {core_path} is invalid: {e}")
    try:
        rules_cfg = load_yaml_file(rules_path)
    except Exception as e:
        return errors + [f"rules config {rules_path} is invalid: {e}"]
    if rules_cfg is None:
        return errors + [f"missing rules config: {rules_path}"]

    structural = validate_rules_config(rules_cfg)
    if structural:
        return errors + structural
    return errors + list(build_rule_set(rules_cfg, core_cfg).errors)
