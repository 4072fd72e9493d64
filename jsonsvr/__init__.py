from jsonsvr.jsonsvr_errors import (
    JsonSvrError,
    EvaluationError,
    TemplateError,
    MalformedTemplateError,
    UnrecognizedCommandError,
    ServiceLoadError,
)
from jsonsvr.jsonsvr_executor import AttrDict, Context, make_context, evaluate_expression, execute_statements
from jsonsvr.jsonsvr_template import expand
from jsonsvr.jsonsvr_interpolator import OMIT, interpolate
from jsonsvr.jsonsvr_processor import resolve_rule, interpret_rules
from jsonsvr.jsonsvr_service import RouteTable, ServiceApp, load_route_table

__all__ = [
    "JsonSvrError",
    "EvaluationError",
    "TemplateError",
    "MalformedTemplateError",
    "UnrecognizedCommandError",
    "ServiceLoadError",
    "AttrDict",
    "Context",
    "make_context",
    "evaluate_expression",
    "execute_statements",
    "expand",
    "OMIT",
    "interpolate",
    "resolve_rule",
    "interpret_rules",
    "RouteTable",
    "ServiceApp",
    "load_route_table",
]
