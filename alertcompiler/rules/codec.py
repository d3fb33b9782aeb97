"""Query-param codec — the only place the ``gems_expr_json`` payload is parsed."""

from __future__ import annotations

from pydantic import ValidationError

from alertcompiler.core.exceptions import DecodeError
from alertcompiler.core.types import QueryParams


def decode_query_params(payload: str) -> QueryParams:
    """Parse an annotation payload into QueryParams.

    Raises:
        DecodeError: malformed JSON, missing/empty resource or rule, or a
            comparison operator outside the supported set.
    """
    try:
        return QueryParams.model_validate_json(payload)
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in exc.errors()
        )
        raise DecodeError(f"invalid query params payload ({problems})") from exc


def encode_query_params(params: QueryParams) -> str:
    """Serialize QueryParams with the canonical key order.

    Keys: resource, rule, unit, labelpairs, compareOp, compareValue.
    """
    return params.model_dump_json(by_alias=True)
