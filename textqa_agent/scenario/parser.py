import logging
import os
import re
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple

from textqa_agent.data import Step, TestCase
from textqa_agent.errors import ScenarioNotFoundError
from textqa_agent.utils.env import expand_env

CASE_HEADER = "## "
COMMENT_MARKER = "#"
CASE_SEPARATOR = "---"
MULTILINE_OPEN = '"+"'
MULTILINE_CLOSE = '"-"'

# First "#" not preceded by a backslash starts an inline comment.
INLINE_COMMENT_RE = re.compile(r"(?<!\\)#")


class ParserState(Enum):
    OUTSIDE_CASE = "outside-case"
    INSIDE_CASE = "inside-case"
    INSIDE_MULTILINE = "inside-multiline"


def split_inline_comment(line: str) -> Tuple[str, Optional[str]]:
    """Split ``action # comment``. A literal ``#`` is written as ``\\#``."""
    m = INLINE_COMMENT_RE.search(line)
    if m is not None:
        action, comment = line[:m.start()].rstrip(), line[m.end():].strip()
        if comment:
            return action.replace("\\#", "#"), comment
    return line.strip().replace("\\#", "#"), None


def determine_workflow(scenario_path: str, cache_dir: Optional[str] = None) -> str:
    """Name the workflow for a scenario file and make sure its cache
    directory exists."""
    cache_dir = os.path.abspath(cache_dir or os.environ.get("TEXTQA_CACHE_DIR") or "cache")
    base = os.path.basename(scenario_path)
    if base.lower().endswith(".txt"):
        base = base[:-4]
    workflow = f"{base.lower()}-flow"
    os.makedirs(os.path.join(cache_dir, workflow), exist_ok=True)
    return workflow


class ScenarioParser:
    """Turns a plain-text scenario into ordered test cases.

    Grammar, one construct per line:

    - ``## title`` opens a test case
    - ``# text`` is a case comment; it also annotates the next step
    - ``---`` closes the current case and opens an untitled one
    - ``"+"`` ... ``"-"`` encloses a verbatim multiline step
    - ``"+" text "-"`` on a single line is an inline multiline step
    - anything else inside a case is a step, optionally ``step # comment``

    ``%NAME%`` in step lines is expanded against ``env``.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, workflow: Optional[str] = None):
        self.env = env if env is not None else os.environ
        self.workflow = workflow

    def parse_file(self, file_path: str, workflow: Optional[str] = None) -> List[TestCase]:
        if not os.path.isfile(file_path):
            raise ScenarioNotFoundError(file_path)
        with open(file_path, "r", encoding="utf-8-sig") as f:
            content = f.read()
        logging.debug(f"Parsing scenario file: {file_path}")
        return self.parse(content, workflow=workflow)

    def parse(self, content: str, workflow: Optional[str] = None) -> List[TestCase]:
        lines = content.split("\n")
        # a trailing newline terminates the last line, it does not open a new one
        if lines and lines[-1] == "":
            lines.pop()
        return self.parse_lines(lines, workflow=workflow)

    def parse_lines(self, lines: Iterable[str], workflow: Optional[str] = None) -> List[TestCase]:
        workflow = workflow or self.workflow
        test_cases: List[TestCase] = []
        current: Optional[TestCase] = None
        pending_comment: Optional[str] = None
        state = ParserState.OUTSIDE_CASE
        buffer: List[str] = []
        buffer_start = 0

        for line_no, raw in enumerate(lines, start=1):
            line = raw.rstrip("\r")
            trimmed = line.strip()

            if state is ParserState.INSIDE_MULTILINE:
                if trimmed == MULTILINE_CLOSE:
                    state = ParserState.INSIDE_CASE
                    content = "\n".join(buffer)
                    if content.strip():
                        current.steps.append(
                            Step(action=content, comment=pending_comment, is_multiline=True,
                                 workflow=workflow, line=buffer_start)
                        )
                        pending_comment = None
                    buffer = []
                else:
                    buffer.append(line)
                continue

            if not trimmed:
                continue

            if trimmed.startswith(CASE_HEADER) or trimmed == CASE_HEADER.strip():
                if current is not None:
                    test_cases.append(current)
                current = TestCase(name=trimmed[len(CASE_HEADER.strip()):].strip())
                pending_comment = None
                state = ParserState.INSIDE_CASE
                continue

            if current is None:
                if not trimmed.startswith(COMMENT_MARKER):
                    logging.warning(f"Line {line_no} is outside any test case and was ignored: {trimmed}")
                continue

            if trimmed.startswith(COMMENT_MARKER):
                comment = trimmed[len(COMMENT_MARKER):].strip()
                if comment:
                    current.comments.append(comment)
                    pending_comment = comment
                continue

            if trimmed.startswith(CASE_SEPARATOR):
                test_cases.append(current)
                current = TestCase(name=f"Untitled case {len(test_cases) + 1}")
                pending_comment = None
                continue

            if trimmed == MULTILINE_OPEN:
                state = ParserState.INSIDE_MULTILINE
                buffer = []
                buffer_start = line_no + 1
                continue

            if (
                trimmed.startswith(MULTILINE_OPEN)
                and trimmed.endswith(MULTILINE_CLOSE)
                and len(trimmed) > len(MULTILINE_OPEN) + len(MULTILINE_CLOSE)
            ):
                content = trimmed[len(MULTILINE_OPEN):-len(MULTILINE_CLOSE)].strip()
                if content:
                    current.steps.append(
                        Step(action=content, comment=pending_comment, is_multiline=True,
                             workflow=workflow, line=line_no)
                    )
                    pending_comment = None
                continue

            action, inline_comment = split_inline_comment(trimmed)
            action = expand_env(action, self.env).strip()
            if not action:
                continue
            current.steps.append(
                Step(action=action, comment=inline_comment or pending_comment, workflow=workflow, line=line_no,
                     env_expanded=True)
            )
            pending_comment = None

        if state is ParserState.INSIDE_MULTILINE and current is not None:
            content = "\n".join(buffer)
            logging.warning(f"Multiline step opened at line {buffer_start - 1} was never closed")
            if content.strip():
                current.steps.append(
                    Step(action=content, comment=pending_comment, is_multiline=True,
                         workflow=workflow, line=buffer_start)
                )

        if current is not None:
            test_cases.append(current)
        return test_cases


def parse_scenario(content: str, env: Optional[Mapping[str, str]] = None, workflow: Optional[str] = None) -> List[TestCase]:
    return ScenarioParser(env=env, workflow=workflow).parse(content)
