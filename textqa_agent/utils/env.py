import os
import re
from typing import Mapping, Optional

ENV_PLACEHOLDER_RE = re.compile(r"%(\w+)%")


def expand_env(text: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Replace ``%NAME%`` with ``env[NAME]``.

    Unset or empty variables leave the placeholder verbatim.
    """
    if env is None:
        env = os.environ

    def _replace(m):
        value = env.get(m.group(1))
        return value if isinstance(value, str) and value else m.group(0)

    return ENV_PLACEHOLDER_RE.sub(_replace, text)
