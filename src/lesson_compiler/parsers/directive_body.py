"""Attribute/content parser for the body of a ``:::`` directive.

Example body::

    difficulty: facile
    question: Quanto fa 2+2?

    - [ ] 3
    - [x] 4

yields ``attrs = {"difficulty": "facile", "question": "Quanto fa 2+2?"}`` and
``content = "- [ ] 3\\n- [x] 4"``.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ATTRIBUTE_RE = re.compile(r"^([a-zA-Z_]\w*)\s*:\s*(.*)$")
INT_RE = re.compile(r"^-?\d+$")
FLOAT_RE = re.compile(r"^-?\d+\.\d+$")


@dataclass
class DirectiveBody:
    attrs: Dict[str, Any] = field(default_factory=dict)
    content: str = ""


def parse_value(value: str) -> Any:
    """Coerce a scalar attribute value.

    Examples:
        >>> parse_value("true"), parse_value("400"), parse_value("0.5")
        (True, 400, 0.5)
        >>> parse_value('"quoted"'), parse_value("facile")
        ('quoted', 'facile')
    """
    if value == "true":
        return True
    if value == "false":
        return False
    if INT_RE.match(value):
        return int(value)
    if FLOAT_RE.match(value):
        return float(value)
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_directive_body(body: str) -> DirectiveBody:
    """Split a directive body into attributes and free-form content.

    Rules, applied line by line:
    - a blank line closes the open attribute (kept as a blank line once in
      content mode)
    - a ``- `` list item closes the open attribute and switches to content
      mode for the rest of the body
    - ``key: value`` stores a coerced value; ``key:`` with nothing after it
      opens a multi-line value
    - any other line extends the open attribute, or switches to content mode

    Args:
        body: Directive body text

    Returns:
        DirectiveBody with every attribute flushed and trimmed content
    """
    result = DirectiveBody()
    content_lines: List[str] = []
    current_key: Optional[str] = None
    current_value: List[str] = []
    in_content = False

    def flush() -> None:
        nonlocal current_key, current_value
        if current_key:
            result.attrs[current_key] = parse_value("\n".join(current_value).strip())
        current_key = None
        current_value = []

    for line in body.split("\n"):
        stripped = line.strip()

        if not stripped:
            flush()
            if in_content:
                content_lines.append("")
            continue

        if stripped.startswith("- "):
            flush()
            in_content = True
            content_lines.append(line)
            continue

        if in_content:
            content_lines.append(line)
            continue

        match = ATTRIBUTE_RE.match(line)
        if match:
            flush()
            key, value = match.group(1), match.group(2).strip()
            if value:
                result.attrs[key] = parse_value(value)
            else:
                current_key = key
            continue

        if current_key:
            current_value.append(line)
        else:
            in_content = True
            content_lines.append(line)

    flush()
    result.content = "\n".join(content_lines).strip()
    return result
