"""Rule decoding — query-param codec, expression templates, level aggregation."""

from alertcompiler.rules.codec import decode_query_params, encode_query_params
from alertcompiler.rules.levels import LevelGroup, RuleEntry, aggregate_levels
from alertcompiler.rules.templates import TemplateRegistry, build_rule_expression

__all__ = [
    "LevelGroup",
    "RuleEntry",
    "TemplateRegistry",
    "aggregate_levels",
    "build_rule_expression",
    "decode_query_params",
    "encode_query_params",
]
