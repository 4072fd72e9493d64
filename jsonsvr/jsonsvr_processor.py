"""
Rule resolution and response dispatch.

For one matched (path, method) the processor:
  1. picks the first rule whose `condition` is absent or truthy (else 404),
  2. runs `preScript`,
  3. interpolates the whole rule,
  4. sets `headers`,
  5. performs exactly one of `response` > `redirect` > `errorResponse` >
     `responseText` (or answers 500 when none is set),
  6. runs `postScript`, unless the `response` file was missing.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from jsonsvr import jsonsvr_readers
from jsonsvr.jsonsvr_executor import evaluate_expression, execute_statements
from jsonsvr.jsonsvr_interpolator import OMIT, interpolate
from jsonsvr.jsonsvr_serialize import deserialize, format_from_path
from jsonsvr.jsonsvr_template import expand, to_text

logger = logging.getLogger(__name__)

Rule = Dict[str, Any]

TERMINAL_FIELDS = ("response", "redirect", "errorResponse", "responseText")


def resolve_rule(rules: List[Rule], context: Dict[str, Any]) -> Optional[Rule]:
    """Return the first rule whose condition holds, or None."""
    for rule in rules:
        condition = rule.get("condition")
        if condition is None:
            return rule
        # A literal JSON boolean is taken as is; strings are Python expressions
        matched = evaluate_expression(condition, context) if isinstance(condition, str) else condition
        if matched:
            return rule
    return None


def populate_headers(headers: Dict[str, Any], response) -> None:
    for name, value in headers.items():
        response.set(name, to_text(value))


async def respond_with_file(path: str, context: Dict[str, Any]) -> bool:
    """Serve a template file. Returns False (after sending 404) when it does not exist."""
    response = context["response"]
    try:
        content = await jsonsvr_readers.read_file(path)
    except FileNotFoundError:
        logger.error("Error: File not found: %s", path)
        response.send_status(404)
        return False

    lower = path.lower()
    fmt = format_from_path(path)
    if lower.endswith((".html", ".htm")):
        response.end(to_text(expand(content, context)), media_type="text/html")
    elif fmt is not None:
        document = await interpolate(deserialize(content, fmt=fmt), context)
        if document is OMIT:
            response.end("", media_type="application/json")
        else:
            response.json(document)
    else:
        response.end(to_text(expand(content, context)), media_type="text/plain")
    return True


def _status_code(value: Any) -> int:
    if value in (None, ""):
        return 500
    try:
        code = int(value)
    except (TypeError, ValueError):
        code = None
    if code is None or not 100 <= code <= 599:
        logger.warning("errorResponse %r is not a status code; sending 500", value)
        return 500
    return code


async def interpret_rules(rules: List[Rule], context: Dict[str, Any]) -> None:
    """Resolve one rule out of `rules` and turn it into a response on context['response']."""
    response = context["response"]

    matched = resolve_rule(rules, context)
    if matched is None:
        logger.debug("No rule matched the request")
        response.send_status(404)
        return

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Rule matched the request: %s", json.dumps(matched, default=repr))

    # Runs before interpolation: later fields usually read what it stores in `data`.
    if matched.get("preScript"):
        execute_statements(matched["preScript"], context)

    rule = await interpolate(matched, context)
    if not isinstance(rule, dict):
        rule = {}

    if rule.get("headers"):
        populate_headers(rule["headers"], response)

    if rule.get("response") is not None:
        sent = await respond_with_file(to_text(rule["response"]), context)
        if not sent:
            return
    elif rule.get("redirect") is not None:
        response.redirect(to_text(rule["redirect"]) or "/")
    elif rule.get("errorResponse") is not None:
        response.send_status(_status_code(rule["errorResponse"]))
    elif rule.get("responseText") is not None:
        response.send(rule["responseText"])
    else:
        logger.warning("Rule defines none of %s; sending 500", ", ".join(TERMINAL_FIELDS))
        response.send_status(500)

    if rule.get("postScript"):
        execute_statements(rule["postScript"], context)


__all__ = ["resolve_rule", "interpret_rules", "respond_with_file", "populate_headers", "TERMINAL_FIELDS"]
