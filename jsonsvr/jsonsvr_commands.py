"""
Handlers for the `$` commands understood inside templates.

    {"$array": {"count": 3, "element": {"id": "${i}"}}}
    {"$csv":   {"file": "./people.csv", "firstLineHeader": true, "element": "${col['name']}"}}
    {"$exec":  "data['hits'] = data.get('hits', 0) + 1"}
    {"$if":    {"condition": "${data.get('admin')}", "then": "yes", "else": "no"}}

A handler receives the raw (uninterpolated) command value and returns the
value that replaces the enclosing object, or OMIT to drop it.
"""
import logging
from typing import Any, Awaitable, Callable, Dict

from jsonsvr import jsonsvr_readers
from jsonsvr.jsonsvr_errors import MalformedTemplateError, UnrecognizedCommandError
from jsonsvr.jsonsvr_executor import AttrDict, Context, evaluate_expression, execute_statements
from jsonsvr.jsonsvr_interpolator import OMIT, interpolate
from jsonsvr.jsonsvr_template import expand, has_placeholder

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any, Dict[str, Any]], Awaitable[Any]]

COMMANDS: Dict[str, CommandHandler] = {}


def command(name: str):
    """Register the decorated coroutine as the handler for `name`."""
    def register(func: CommandHandler) -> CommandHandler:
        COMMANDS[name] = func
        return func
    return register


def get_command_handler(name: str) -> CommandHandler:
    try:
        return COMMANDS[name]
    except KeyError:
        raise UnrecognizedCommandError(name) from None


async def process_command(name: str, descriptor: Any, context: Dict[str, Any]) -> Any:
    try:
        handler = get_command_handler(name)
    except UnrecognizedCommandError as e:
        # The author may have meant the key literally; keep it, uninterpolated.
        logger.warning("%s", e)
        return {name: descriptor}
    return await handler(descriptor, context)


def _require_object(name: str, descriptor: Any, *fields: str) -> Dict[str, Any]:
    if not isinstance(descriptor, dict):
        raise MalformedTemplateError(f"expected object for {name} value")
    for f in fields:
        if f not in descriptor:
            raise MalformedTemplateError(f"expected {name} to contain .{f}")
    return descriptor


def _resolve_count(count: Any, context: Dict[str, Any]) -> int:
    if isinstance(count, str):
        count = expand(count, context) if has_placeholder(count) else evaluate_expression(count, context)
    try:
        return int(count)
    except (TypeError, ValueError):
        raise MalformedTemplateError(f"$array.count must be a number, got {count!r}") from None


@command("$array")
async def _array(descriptor: Any, context: Dict[str, Any]) -> list:
    desc = _require_object("$array", descriptor, "count", "element")
    # Evaluated once, in the outer context
    count = _resolve_count(desc["count"], context)
    element = desc["element"]

    result = []
    for i in range(count):
        item = await interpolate(element, Context(context, i=i))
        if item is not OMIT:
            result.append(item)
    return result


@command("$csv")
async def _csv(descriptor: Any, context: Dict[str, Any]) -> list:
    desc = _require_object("$csv", descriptor, "file", "element")
    file = desc["file"]
    if has_placeholder(file):
        file = expand(file, context)
    if not isinstance(file, str):
        raise MalformedTemplateError(f"$csv.file must be a string, got {file!r}")

    content = await jsonsvr_readers.read_file(file)
    delimiter = desc.get("delimiter") or ","
    headers = list(desc.get("headers") or [])
    header_pending = bool(desc.get("firstLineHeader"))
    element = desc["element"]

    results = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        cols = line.split(delimiter)
        if header_pending:
            # The header row names the columns and is not emitted
            headers = cols
            header_pending = False
            continue

        col = AttrDict((hdr, cols[idx]) for idx, hdr in enumerate(headers) if idx < len(cols))
        item = await interpolate(element, Context(context, lineno=lineno, cols=cols, col=col))
        if item is not OMIT:
            results.append(item)

    return results


@command("$exec")
async def _exec(descriptor: Any, context: Dict[str, Any]):
    if not (isinstance(descriptor, str) or isinstance(descriptor, list)):
        raise MalformedTemplateError("expected string or string array for $exec value")
    execute_statements(descriptor, context)
    return OMIT


@command("$if")
async def _if(descriptor: Any, context: Dict[str, Any]) -> Any:
    desc = _require_object("$if", descriptor, "condition", "then")
    condition = desc["condition"]
    # Only placeholders are evaluated; a bare string is just a (truthy) string.
    if isinstance(condition, str):
        condition = expand(condition, context)

    if condition:
        return await interpolate(desc["then"], context)
    if "else" in desc:
        return await interpolate(desc["else"], context)
    return OMIT


__all__ = ["COMMANDS", "command", "get_command_handler", "process_command"]
