"""Strip shell metacharacters from text headed for a command string.

Only the metacharacters below are removed. Path characters such as ``/`` and
``-`` survive, so ``"restart the server; rm -rf /"`` becomes
``"restart the server rm -rf /"``: the result is safe to concatenate, it is
not a validated argument.
"""

from __future__ import annotations

import re

UNSAFE_CHARACTERS = ";`${}|<>&\\"

_UNSAFE_RE = re.compile(r"[;`${}|<>&\\]")


def sanitize(text: str | None) -> str:
    if not text:
        return ""
    return _UNSAFE_RE.sub("", text).strip()
