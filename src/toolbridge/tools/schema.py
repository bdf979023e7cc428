"""Normalization of raw tool parameter schemas into descriptors.

Tool servers describe their parameters with loosely shaped JSON schemas:
`properties` may be missing, a property may carry no type, types may be
unions produced by the server's own type system. Everything here degrades
to documented defaults instead of raising.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional, Set

from .tool_types import (
    UNKNOWN_TYPE,
    DefaultValue,
    ParameterDescriptor,
    RawLiteralDefault,
    StringDefault,
)

logger = logging.getLogger(__name__)


def _resolve_type(prop: Mapping[str, Any]) -> str:
    """Pick the type tag of a property schema."""
    type_field = prop.get("type")
    if isinstance(type_field, str):
        return type_field
    if isinstance(type_field, list):
        for entry in type_field:
            if isinstance(entry, str) and entry != "null":
                return entry

    # Optional parameters from Python servers come as anyOf [{type: T}, {type: null}]
    for key in ("anyOf", "oneOf"):
        variants = prop.get(key)
        if not isinstance(variants, list):
            continue
        for variant in variants:
            if isinstance(variant, Mapping):
                resolved = _resolve_type(variant)
                if resolved not in (UNKNOWN_TYPE, "null"):
                    return resolved
    return UNKNOWN_TYPE


def _required_names(raw_schema: Mapping[str, Any]) -> Set[str]:
    required = raw_schema.get("required")
    if not isinstance(required, list):
        return set()
    return {entry for entry in required if isinstance(entry, str)}


def normalize_default(type_tag: str, value: Any) -> Optional[DefaultValue]:
    """Store a default as a plain string for `string` parameters, else as literal text."""
    if type_tag == "string":
        if value is None:
            return None
        if isinstance(value, str):
            return StringDefault(value=value)
        return StringDefault(value=json.dumps(value, ensure_ascii=False))
    return RawLiteralDefault(literal=json.dumps(value, ensure_ascii=False))


def normalize_parameter(name: str, prop: Any, required: bool = False) -> ParameterDescriptor:
    """Build the descriptor of a single property."""
    if not isinstance(prop, Mapping):
        return ParameterDescriptor(name=name, required=required)

    type_tag = _resolve_type(prop)
    description = prop.get("description")
    default = normalize_default(type_tag, prop["default"]) if "default" in prop else None

    return ParameterDescriptor(
        name=name,
        type=type_tag,
        description=description if isinstance(description, str) else "",
        default=default,
        required=required,
    )


def normalize_parameters(raw_schema: Any) -> Dict[str, ParameterDescriptor]:
    """Convert a tool's raw input schema into a name -> descriptor mapping."""
    if not isinstance(raw_schema, Mapping):
        return {}
    properties = raw_schema.get("properties")
    if not isinstance(properties, Mapping):
        return {}

    required = _required_names(raw_schema)
    descriptors = {
        str(name): normalize_parameter(str(name), prop, str(name) in required)
        for name, prop in properties.items()
    }

    orphans = required - descriptors.keys()
    if orphans:
        logger.debug(f"Ignoring required names without properties: {sorted(orphans)}")
    return descriptors
