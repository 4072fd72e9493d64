"""
`${...}` placeholder expansion for strings.
"""
import json
import re
from typing import Any, Dict

from jsonsvr.jsonsvr_executor import evaluate_expression

# Non-greedy: the first '}' closes the placeholder.
PLACEHOLDER_RE = re.compile(r"\$\{(.*?)\}")


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def has_placeholder(value: Any) -> bool:
    return isinstance(value, str) and PLACEHOLDER_RE.search(value) is not None


def expand(value: str, context: Dict[str, Any]) -> Any:
    """Substitute every `${expr}` in `value` with the result of `expr`.

    A string that is exactly one placeholder returns the evaluated value as
    is (a number stays a number, a dict stays a dict). Otherwise each
    placeholder is replaced, left to right, by the text form of its value.
    """
    # fullmatch() would stretch the lazy group across several placeholders.
    whole = PLACEHOLDER_RE.match(value)
    if whole is not None and whole.end() == len(value):
        return evaluate_expression(whole.group(1), context)

    return PLACEHOLDER_RE.sub(lambda m: to_text(evaluate_expression(m.group(1), context)), value)


__all__ = ["PLACEHOLDER_RE", "expand", "has_placeholder", "to_text"]
