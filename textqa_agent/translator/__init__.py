from .compiler import PatternCompiler, PatternMatcher, RegexPatternMatcher
from .matcher import RuleMatcher
from .renderer import infer_action_type, render_template
from .rules import RuleSet, build_rule_set, check_rules_files, load_rule_set, validate_rules_config
from .translator import Translator

__all__ = [
    "PatternCompiler",
    "PatternMatcher",
    "RegexPatternMatcher",
    "RuleMatcher",
    "RuleSet",
    "Translator",
    "build_rule_set",
    "check_rules_files",
    "infer_action_type",
    "load_rule_set",
    "render_template",
    "validate_rules_config",
]
