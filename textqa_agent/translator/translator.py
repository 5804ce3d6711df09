import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from textqa_agent.data import AgentTranslation, MatchResult, ParamValidation, RuleTranslation, Translation
from textqa_agent.errors import TranslationValidationError
from textqa_agent.translator.renderer import infer_action_type, render_template
from textqa_agent.translator.rules import RuleSet, build_rule_set, load_rule_set
from textqa_agent.utils.config import CORE_CONFIG_NAME, RULES_CONFIG_NAME, default_config_path
from textqa_agent.utils.env import expand_env


class Translator:
    """Maps natural-language steps to action strings using the configured
    rules.

    When no rule matches, the step falls back to agent mode and is handed
    to the automation session as free-form intent.

    Args:
        rules_path: YAML file holding the ``rules`` list.
        core_path: YAML file whose ``translation`` section holds
            ``param_patterns``, ``segment_delimiter`` and ``strict_mode``.
        strict_mode: overrides ``translation.strict_mode`` when given.
        env: mapping used for ``%NAME%`` expansion, ``os.environ`` by default.
        rules_config / core_config: in-memory documents used instead of files.
    """

    def __init__(
        self,
        rules_path: Optional[str] = None,
        core_path: Optional[str] = None,
        strict_mode: Optional[bool] = None,
        env: Optional[Mapping[str, str]] = None,
        rules_config: Optional[Dict[str, Any]] = None,
        core_config: Optional[Dict[str, Any]] = None,
    ):
        self.rules_path = rules_path or default_config_path(RULES_CONFIG_NAME)
        self.core_path = core_path or default_config_path(CORE_CONFIG_NAME)
        self._strict_override = strict_mode
        self.env = env if env is not None else os.environ
        self._rules_config = rules_config
        self._core_config = core_config
        self._rule_set: RuleSet = self._load()

    def _load(self) -> RuleSet:
        if self._rules_config is not None:
            return build_rule_set(self._rules_config, self._core_config, strict_mode=self._strict_override)
        return load_rule_set(self.rules_path, self.core_path, strict_mode=self._strict_override)

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def rules(self):
        return self._rule_set.rules

    @property
    def param_patterns(self) -> Dict[str, str]:
        return self._rule_set.param_patterns

    @property
    def strict_mode(self) -> bool:
        return self._rule_set.strict_mode

    @property
    def config_errors(self) -> List[str]:
        return list(self._rule_set.errors)

    def reload(self) -> Dict[str, Any]:
        """Re-read rules and parameter patterns, then publish them in one
        assignment."""
        new_rule_set = self._load()
        self._rule_set = new_rule_set
        logging.info(f"Translation rules reloaded: {len(new_rule_set.rules)} rules")
        return {"rules": len(new_rule_set.rules), "errors": list(new_rule_set.errors)}

    def candidates(self, text: str) -> List[MatchResult]:
        return self._rule_set.matcher.candidates(expand_env(text, self.env))

    def translate(self, step_text: str, expand: bool = True) -> Translation:
        """Translate one step.

        ``expand=False`` skips ``%NAME%`` expansion for text that was already
        expanded, such as steps produced by the scenario parser, so a value
        containing ``%OTHER%`` is not expanded a second time.
        """
        rule_set = self._rule_set
        expanded = expand_env(step_text, self.env) if expand else step_text
        match = rule_set.matcher.match(expanded)
        if match is None:
            logging.debug(f"No rule matched, using agent mode: {expanded}")
            return AgentTranslation(action=expanded)

        rule = match.rule
        missing = tuple(
            name for name in sorted(rule.required_params)
            if not (isinstance(match.params.get(name), str) and match.params[name].strip())
        )
        if missing:
            if rule_set.strict_mode:
                raise TranslationValidationError(rule.name, missing, action_type=infer_action_type(rule.template))
            logging.warning(f"Rule '{rule.name}' matched without required parameters: {', '.join(missing)}")

        return RuleTranslation(
            action=expanded,
            action_raw=step_text,
            matched_rule=rule.name,
            matched_pattern=match.pattern,
            params=match.params,
            template=rule.template,
            code=render_template(rule.template, match.params),
            type=infer_action_type(rule.template),
            validation=ParamValidation(valid=not missing, missing=missing),
        )
