from .structures import (
    AgentTranslation,
    CaseResult,
    CompiledStep,
    ExecutionRecord,
    FileChange,
    MatchResult,
    ParamValidation,
    Rule,
    RuleTranslation,
    Step,
    StepResult,
    TestCase,
    Translation,
)

__all__ = [
    "Rule",
    "MatchResult",
    "ParamValidation",
    "RuleTranslation",
    "AgentTranslation",
    "Translation",
    "Step",
    "TestCase",
    "CompiledStep",
    "StepResult",
    "ExecutionRecord",
    "CaseResult",
    "FileChange",
]
