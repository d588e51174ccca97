"""
Flatten unstructured manifests into typed models.

Flattening is the inverse of expansion and populates the model in place.
Missing keys are valid for optional fields and leave them as None. A value
whose shape disagrees with the declared field type raises ShapeMismatchError
naming the manifest path. Values are never silently dropped or zeroed.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel

from kubebridge.errors import ShapeMismatchError
from kubebridge.mapping.expand import join_path
from kubebridge.mapping.schema import FieldKind, FieldSpec, describe_model

_MISSING = object()

M = TypeVar("M", bound=BaseModel)


def flatten_model(manifest: Mapping[str, Any], model: M) -> M:
    """
    Populate a typed model from a manifest.

    The identity field is left untouched; the CRUD orchestrator sets it.

    Args:
        manifest: Manifest as nested dicts, lists and scalars
        model: Typed model instance, mutated in place

    Returns:
        The same model instance

    Raises:
        ShapeMismatchError: If a manifest value has the wrong shape
    """
    _flatten_record(manifest, model, "")
    return model


def _flatten_record(manifest: Any, record: BaseModel, path: str) -> None:
    if not isinstance(manifest, Mapping):
        raise ShapeMismatchError(path or "<root>", "mapping", manifest)

    for spec in describe_model(type(record)).fields:
        raw = manifest.get(spec.path, _MISSING)
        field_path = join_path(path, spec.path)
        present = raw is not _MISSING and raw is not None

        if spec.kind is FieldKind.SCALAR:
            value = coerce_scalar(raw, spec.scalar_type, field_path) if present else None

        elif spec.kind is FieldKind.RECORD:
            current = getattr(record, spec.name, None)
            value = _flatten_nested(raw if present else {}, spec, field_path, current)

        elif spec.kind is FieldKind.OPTIONAL_RECORD:
            current = getattr(record, spec.name, None)
            value = _flatten_nested(raw, spec, field_path, current) if present else None

        elif spec.kind is FieldKind.MAPPING:
            value = _flatten_mapping(raw, spec, field_path) if present else None

        else:
            value = _flatten_sequence(raw, spec, field_path) if present else None

        setattr(record, spec.name, value)


def _flatten_nested(
    raw: Any, spec: FieldSpec, path: str, current: Any = None
) -> BaseModel:
    target = (
        current
        if isinstance(current, spec.record_type)
        else spec.record_type.model_construct()
    )
    _flatten_record(raw, target, path)
    return target


def _flatten_mapping(raw: Any, spec: FieldSpec, path: str) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ShapeMismatchError(path, "mapping", raw)
    return {
        key: (
            None
            if item is None
            else coerce_scalar(item, spec.scalar_type, join_path(path, key))
        )
        for key, item in raw.items()
    }


def _flatten_sequence(raw: Any, spec: FieldSpec, path: str) -> list[Any]:
    if not isinstance(raw, (list, tuple)):
        raise ShapeMismatchError(path, "sequence", raw)

    result = []
    for index, item in enumerate(raw):
        item_path = f"{path}[{index}]"
        if item is None:
            result.append(None)
        elif spec.element_is_record:
            result.append(_flatten_nested(item, spec, item_path))
        else:
            result.append(coerce_scalar(item, spec.scalar_type, item_path))
    return result


def coerce_scalar(raw: Any, scalar_type: type | None, path: str) -> Any:
    """
    Check a wire scalar against the declared type and convert it.

    JSON decoders may hand integral numbers back as floats, so an integral
    float is accepted for int fields. Strings are never parsed into numbers
    or booleans.

    Args:
        raw: Value from the manifest
        scalar_type: Declared scalar type of the field
        path: Manifest path, used in errors

    Returns:
        The value converted to the declared type

    Raises:
        ShapeMismatchError: If the value cannot represent the declared type
    """
    if scalar_type is bool:
        if isinstance(raw, bool):
            return raw
    elif scalar_type is str:
        if isinstance(raw, str):
            return raw
    elif scalar_type is int:
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if isinstance(raw, float) and raw.is_integer():
            return int(raw)
    elif scalar_type is float:
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)

    expected = scalar_type.__name__ if scalar_type is not None else "scalar"
    raise ShapeMismatchError(path, expected, raw)
