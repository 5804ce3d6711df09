import re
from typing import Mapping, Optional

from textqa_agent.translator.compiler import PLACEHOLDER_RE

EXTRACT_LINE_RE = re.compile(r"^\s*extract\s*:", re.MULTILINE)


def render_template(template: Optional[str], params: Mapping[str, Optional[str]]) -> str:
    """Substitute ``{name}`` placeholders with captured parameters.

    A placeholder without a value is kept as literal ``{name}`` so a bad
    capture stays visible in the generated action.
    """
    if not template:
        return ""

    def _replace(m):
        value = params.get(m.group(1))
        return m.group(0) if value is None else str(value)

    return PLACEHOLDER_RE.sub(_replace, template)


def infer_action_type(template: Optional[str]) -> str:
    if template and EXTRACT_LINE_RE.search(template):
        return "extract"
    return "act"
