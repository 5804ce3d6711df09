"""TextQA exception hierarchy.

All TextQA-specific exceptions inherit from TextQAError.
"""
from typing import Iterable, List


class TextQAError(Exception):
    """Base exception for all TextQA errors."""


class ConfigurationError(TextQAError):
    """Raised when rule or parameter-pattern configuration is malformed.

    Carries every violation found, not just the first one.
    """

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("Invalid translation configuration:\n - " + "\n - ".join(self.errors))


class TranslationValidationError(TextQAError):
    """Raised in strict mode when a matched rule lacks required parameters."""

    def __init__(self, rule_name: str, missing: Iterable[str], action_type: str = "act") -> None:
        self.rule_name = rule_name
        self.missing = list(missing)
        self.action_type = action_type
        super().__init__(f"Rule '{rule_name}' is missing required parameters: {', '.join(self.missing)}")


class ActionError(TextQAError):
    """Raised when a rendered action string cannot be carried out."""


class AssertionFailedError(ActionError):
    """Raised when an assert_* action does not hold on the current page."""


class ScenarioNotFoundError(TextQAError):
    """Raised when a scenario file lookup fails."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Scenario file not found: {path}")
