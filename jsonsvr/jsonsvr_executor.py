"""
The snippet evaluator.

Expressions and statements embedded in a service definition are plain
Python, compiled on first use and run against a fresh namespace built from
the request Context. Nothing is sandboxed: snippets see the whole process.
"""
from __future__ import annotations

import importlib
import logging
import textwrap
from functools import lru_cache
from typing import Any, Dict, Optional

from jsonsvr import jsonsvr_testlib
from jsonsvr.jsonsvr_errors import EvaluationError

logger = logging.getLogger(__name__)


def promote(value: Any) -> Any:
    """Make JSON-shaped data attribute-accessible.

    A plain dict becomes an AttrDict; a list has its plain-dict items
    replaced in place, so references to the list stay valid.
    """
    if type(value) is dict:
        return AttrDict(value)
    if type(value) is list:
        for idx, item in enumerate(value):
            promoted = promote(item)
            if promoted is not item:
                value[idx] = promoted
    return value


class AttrDict(dict):
    """A dict whose keys are also readable and writable as attributes.

    Stored keys win over dict methods on attribute reads, so a payload with
    an `items` or `get` field reads as data; call the methods through
    `dict.items(d)` in that case. Nested values are promoted (see
    `promote`) the first time they are read through an attribute, so
    `data.users[0].name = 'x'` works on JSON-shaped data.
    """

    def __getattribute__(self, name: str):
        if not name.startswith("__") and dict.__contains__(self, name):
            value = dict.__getitem__(self, name)
            promoted = promote(value)
            if promoted is not value:
                dict.__setitem__(self, name, promoted)
            return promoted
        return super().__getattribute__(name)

    def __getattr__(self, name: str):
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any):
        self[name] = value

    def __delattr__(self, name: str):
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None


class Context(AttrDict):
    """The evaluation environment for one request.

    `data` is shared by every request of the process; everything else
    (`request`, `response`, and the `i` / `lineno` / `cols` / `col`
    bindings added during expansion) belongs to this request only.
    Expansion binds those by copying: `Context(parent, i=0)`.
    """
    pass


def make_context(data: Dict[str, Any], request: Any = None, response: Any = None) -> Context:
    return Context(
        data=data,
        request=request,
        req=request,  # short form
        response=response,
        res=response,  # short form
    )


# Names every snippet can see in addition to the context fields.
# Modules listed under `imports` in the config are added by load_libraries().
SCRIPT_GLOBALS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "lib": jsonsvr_testlib,
}


def load_libraries(imports: Optional[Dict[str, str]]) -> None:
    """Import the configured modules and expose each under its alias."""
    for alias, module_name in (imports or {}).items():
        try:
            SCRIPT_GLOBALS[alias] = importlib.import_module(module_name)
            logger.debug("Module %s imported as '%s'.", module_name, alias)
        except ImportError:
            logger.error("Unable to load module '%s' (%s)", alias, module_name)


@lru_cache(maxsize=1024)
def _compile(code: str, mode: str):
    filename = "<expression>" if mode == "eval" else "<statement>"
    return compile(code, filename, mode)


def _namespace(context: Dict[str, Any]) -> Dict[str, Any]:
    ns = dict(SCRIPT_GLOBALS)
    ns.update(context)
    ns["ctx"] = context
    return ns


def _dump_data(context: Dict[str, Any]):
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("ctx.data            = %r", context.get("data"))


def evaluate_expression(code: str, context: Dict[str, Any]) -> Any:
    """Evaluate `code` as a Python expression and return its value."""
    if not isinstance(code, str):
        raise EvaluationError(f"Expression must be a string, got {type(code).__name__}", code=repr(code))
    source = textwrap.dedent(code).strip()
    try:
        compiled = _compile(source, "eval")
    except SyntaxError as e:
        raise EvaluationError(f"Invalid expression {source!r}: {e.msg}", code=source) from e
    try:
        result = eval(compiled, _namespace(context))
    except Exception as e:
        raise EvaluationError(f"Expression {source!r} failed: {type(e).__name__}: {e}", code=source) from e

    logger.debug("Expression executed = %s", source)
    logger.debug("Expression result   = %r", result)
    _dump_data(context)
    return result


def execute_statements(statements: Any, context: Dict[str, Any]) -> None:
    """Run one statement string, or a list of them in order, for side effects.

    List elements that are not strings are skipped with a warning. Bare name
    assignments stay local to the call; only mutations of objects reachable
    from the context (typically `data`) survive.
    """
    stmts = statements if isinstance(statements, list) else [statements]

    for statement in stmts:
        if not isinstance(statement, str):
            logger.warning("Invalid statement: %r", statement)
            continue

        source = textwrap.dedent(statement).strip()
        try:
            compiled = _compile(source, "exec")
        except SyntaxError as e:
            raise EvaluationError(f"Invalid statement {source!r}: {e.msg}", code=source) from e
        try:
            exec(compiled, _namespace(context))
        except Exception as e:
            raise EvaluationError(f"Statement {source!r} failed: {type(e).__name__}: {e}", code=source) from e

        logger.debug("Statement executed = %s", source)
        _dump_data(context)


__all__ = [
    "promote",
    "AttrDict",
    "Context",
    "make_context",
    "SCRIPT_GLOBALS",
    "load_libraries",
    "evaluate_expression",
    "execute_statements",
]
