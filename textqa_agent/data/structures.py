from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# TRANSLATION MODELS
# ============================================================================


class Rule(BaseModel):
    """A named mapping from one or more text patterns to an action
    template."""

    model_config = ConfigDict(frozen=True)

    name: str
    patterns: Tuple[str, ...]
    template: str = ""
    required_params: FrozenSet[str] = Field(default_factory=frozenset)


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: Rule
    pattern: str
    params: Dict[str, Optional[str]] = Field(default_factory=dict)


class ParamValidation(BaseModel):
    """Outcome of the required-parameter check for one translation."""

    model_config = ConfigDict(frozen=True)

    valid: bool = True
    missing: Tuple[str, ...] = ()


class RuleTranslation(BaseModel):
    model_config = ConfigDict(frozen=True)

    engine: Literal["rules"] = "rules"
    action: str
    action_raw: str
    matched_rule: str
    matched_pattern: str
    params: Dict[str, Optional[str]] = Field(default_factory=dict)
    template: str
    code: str
    type: Literal["act", "extract"] = "act"
    validation: ParamValidation = Field(default_factory=ParamValidation)


class AgentTranslation(BaseModel):
    """Fallback translation: the text is handed to the automation session
    as free-form intent."""

    model_config = ConfigDict(frozen=True)

    engine: Literal["agent"] = "agent"
    action: str
    type: Literal["agent"] = "agent"


Translation = Union[RuleTranslation, AgentTranslation]


# ============================================================================
# SCENARIO MODELS
# ============================================================================


class Step(BaseModel):
    action: str
    comment: Optional[str] = None
    is_multiline: bool = False
    # %NAME% placeholders in ``action`` were already expanded by the parser
    env_expanded: bool = False
    workflow: Optional[str] = None
    line: Optional[int] = None


class TestCase(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    name: str
    comments: List[str] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)


# ============================================================================
# EXECUTION MODELS
# ============================================================================


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CompiledStep(BaseModel):
    """A step resolved against the translator, ready to run or preview."""

    translation: Union[RuleTranslation, AgentTranslation] = Field(discriminator="engine")
    action: str
    comment: Optional[str] = None
    is_multiline: bool = False
    workflow: Optional[str] = None


class StepResult(BaseModel):
    success: bool
    action: str
    type: str
    duration: int
    workflow: Optional[str] = None
    result: Any = None
    error: Optional[str] = None
    is_multiline: bool = False


class ExecutionRecord(BaseModel):
    """One entry in the executor's append-only history."""

    model_config = ConfigDict(frozen=True)

    action: str
    type: str
    success: bool
    duration: int
    error: Optional[str] = None
    workflow: Optional[str] = None
    timestamp: str = Field(default_factory=now_iso)


class CaseResult(BaseModel):
    name: str
    steps: List[StepResult] = Field(default_factory=list)
    passed: bool = True
    error: Optional[str] = None
    failed_step: Optional[str] = None
    multiline_steps: int = 0
    cancelled: bool = False
    start_time: str = Field(default_factory=now_iso)
    duration: int = 0


class FileChange(BaseModel):
    """A scenario file whose content differs from the change cache."""

    file: str
    test_case: str = "*"
    changes: List[str] = Field(default_factory=lambda: ["content"])
