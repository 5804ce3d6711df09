from typing import List, NamedTuple, Optional, Sequence

from textqa_agent.data import MatchResult, Rule
from textqa_agent.translator.compiler import PatternCompiler, PatternMatcher


class CompiledRule(NamedTuple):
    rule: Rule
    matchers: Sequence[PatternMatcher]


def compile_rule(rule: Rule, compiler: PatternCompiler) -> CompiledRule:
    return CompiledRule(rule, tuple(compiler.compile(p) for p in rule.patterns))


class RuleMatcher:
    """First-match lookup over compiled rules.

    Rules are tried in declaration order, and within a rule its patterns
    are tried in declaration order. Each rule/pattern pair is evaluated on
    its own, so precedence comes only from configuration order.
    """

    def __init__(self, compiled_rules: Sequence[CompiledRule]):
        self.compiled_rules: List[CompiledRule] = list(compiled_rules)

    def __len__(self):
        return len(self.compiled_rules)

    def match(self, text: str) -> Optional[MatchResult]:
        normalized = text.strip()
        for compiled in self.compiled_rules:
            for matcher in compiled.matchers:
                groups = matcher.match(normalized)
                if groups is None:
                    continue
                params = {k: v.strip() if isinstance(v, str) else v for k, v in groups.items()}
                return MatchResult(rule=compiled.rule, pattern=matcher.source, params=params)
        return None

    def candidates(self, text: str) -> List[MatchResult]:
        """Every rule/pattern pair that matches ``text``, in precedence
        order."""
        normalized = text.strip()
        results = []
        for compiled in self.compiled_rules:
            for matcher in compiled.matchers:
                groups = matcher.match(normalized)
                if groups is not None:
                    params = {k: v.strip() if isinstance(v, str) else v for k, v in groups.items()}
                    results.append(MatchResult(rule=compiled.rule, pattern=matcher.source, params=params))
        return results
