"""
Recursive interpolation of JSON documents.

Objects are scanned for a command key (one starting with `$`); the first
one found is handed to the command processor and its result replaces the
whole object. Everything else is rebuilt with strings run through the
template expander.
"""
from typing import Any, Dict

from jsonsvr.jsonsvr_template import expand

COMMAND_PREFIX = "$"


class _Omit:
    """Marker for "leave this key out"; the result of `$exec` or an `$if` with no branch."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "OMIT"

    def __bool__(self):
        return False


OMIT = _Omit()


def is_command_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(COMMAND_PREFIX)


async def interpolate(value: Any, context: Dict[str, Any]) -> Any:
    """Return a copy of `value` with placeholders evaluated and commands applied."""
    if isinstance(value, dict):
        for key in value:
            if is_command_key(key):
                # Lazy import: the command handlers call back into interpolate()
                from jsonsvr.jsonsvr_commands import process_command
                return await process_command(key, value[key], context)

        out = {}
        for key, item in value.items():
            result = await interpolate(item, context)
            if result is OMIT:
                continue
            out[key] = result
        return out

    if isinstance(value, list):
        items = []
        for item in value:
            result = await interpolate(item, context)
            if result is not OMIT:
                items.append(result)
        return items

    if isinstance(value, str):
        return expand(value, context)

    # numbers, booleans, null
    return value


__all__ = ["OMIT", "COMMAND_PREFIX", "is_command_key", "interpolate"]
