import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from textqa_agent.errors import ConfigurationError

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

TILDE = "~"
PIPE = "|"

# Joiner placed between compiled segments for each delimiter convention.
SEGMENT_JOINERS = {
    TILDE: r"\s*",
    PIPE: r".*?",
}

DEFAULT_FRAGMENT = r".+?"


def strip_anchors(fragment) -> str:
    """Remove a leading ``^`` and an unescaped trailing ``$`` from a
    fragment."""
    if not isinstance(fragment, str):
        return ""
    if fragment.startswith("^"):
        fragment = fragment[1:]
    if fragment.endswith("$") and not fragment.endswith("\\$"):
        fragment = fragment[:-1]
    return fragment


def normalize_param_patterns(patterns: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {name: strip_anchors(fragment) for name, fragment in (patterns or {}).items()}


class PatternMatcher(ABC):
    """A compiled rule pattern.

    Implementations decide how the pattern is evaluated; callers only see
    the captured parameters of a full match.
    """

    def __init__(self, source: str):
        self.source = source

    @abstractmethod
    def match(self, text: str) -> Optional[Dict[str, Optional[str]]]:
        """Return the raw captures when ``text`` matches entirely, else
        None."""


class RegexPatternMatcher(PatternMatcher):
    def __init__(self, source: str, regex: "re.Pattern"):
        super().__init__(source)
        self.regex = regex

    def match(self, text: str) -> Optional[Dict[str, Optional[str]]]:
        m = self.regex.match(text)
        if m is None:
            return None
        return m.groupdict()

    def __repr__(self):
        return f"RegexPatternMatcher({self.source!r} -> {self.regex.pattern!r})"


class PatternCompiler:
    """Compiles rule patterns with ``{name}`` placeholders into anchored
    matchers.

    Args:
        param_patterns: placeholder name -> regex fragment constraining that
            placeholder. Anchors are stripped before embedding.
        delimiter: the active segment delimiter, ``~`` (canonical) or ``|``.
    """

    def __init__(self, param_patterns: Optional[Dict[str, str]] = None, delimiter: str = TILDE):
        if delimiter not in SEGMENT_JOINERS:
            raise ConfigurationError([f"Unsupported segment delimiter: {delimiter!r} (expected '~' or '|')"])
        self.delimiter = delimiter
        self.param_patterns = normalize_param_patterns(param_patterns)

    @property
    def inactive_delimiter(self) -> str:
        return PIPE if self.delimiter == TILDE else TILDE

    def validate(self, pattern: str) -> List[str]:
        """Collect every problem with ``pattern`` without compiling it."""
        errors = []
        if not isinstance(pattern, str) or not pattern.strip():
            return [f"pattern {pattern!r} must be a non-empty string"]

        if self.inactive_delimiter in pattern:
            errors.append(
                f"pattern {pattern!r} uses delimiter '{self.inactive_delimiter}' "
                f"but segment_delimiter is '{self.delimiter}'"
            )

        seen = set()
        for name in PLACEHOLDER_RE.findall(pattern):
            if not name.isidentifier():
                errors.append(f"pattern {pattern!r}: placeholder {{{name}}} is not a valid identifier")
            elif name in seen:
                errors.append(f"pattern {pattern!r}: placeholder {{{name}}} appears more than once")
            seen.add(name)
        return errors

    def compile(self, pattern: str) -> PatternMatcher:
        errors = self.validate(pattern)
        if errors:
            raise ConfigurationError(errors)

        if self.delimiter in pattern:
            segments = [seg.strip() for seg in pattern.split(self.delimiter)]
            compiled = [self._compile_segment(seg) for seg in segments if seg]
            body = SEGMENT_JOINERS[self.delimiter].join(compiled)
        else:
            body = self._compile_segment(pattern)

        try:
            regex = re.compile(rf"\A(?:{body})\Z")
        except re.error as e:
            raise ConfigurationError([f"pattern {pattern!r} does not compile: {e}"])

        logging.debug(f"Compiled pattern {pattern!r} -> {regex.pattern!r}")
        return RegexPatternMatcher(pattern, regex)

    def _compile_segment(self, segment: str) -> str:
        parts = []
        last_index = 0
        for m in PLACEHOLDER_RE.finditer(segment):
            name = m.group(1)
            parts.append(re.escape(segment[last_index:m.start()]))
            fragment = self.param_patterns.get(name) or DEFAULT_FRAGMENT
            parts.append(f"(?P<{name}>{fragment})")
            last_index = m.end()
        parts.append(re.escape(segment[last_index:]))
        return "".join(parts)
