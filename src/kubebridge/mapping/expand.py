"""
Expand typed models into unstructured manifests.

Absent values (None or UNKNOWN) are omitted rather than sent as null, since
omission is how the API server is told a field is not specified. Nested
records are always emitted, even when empty. Optional records, sequences and
mappings are emitted only when set, and mappings also only when they end up
non-empty. Sequence elements keep their positions, so an absent element is
sent as null.

Numbers are sent as 64-bit integers. A float holding an integral value is
converted. Anything else is rejected with UnsupportedValueError rather than
rounded.
"""

from typing import Any

from pydantic import BaseModel

from kubebridge.constants import INT64_MAX, INT64_MIN
from kubebridge.errors import ShapeMismatchError, UnsupportedValueError
from kubebridge.mapping.schema import FieldKind, FieldSpec, describe_model, is_absent


def join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def expand_model(model: BaseModel) -> dict[str, Any]:
    """
    Convert a typed model into a manifest.

    The identity field and unmapped fields are never emitted.

    Args:
        model: Typed model instance (not modified)

    Returns:
        Manifest as nested dicts, lists and scalars

    Raises:
        UnsupportedValueError: For non-integral or out-of-range numbers
        ShapeMismatchError: If a value does not match its declared type
    """
    return _expand_record(model, "")


def _expand_record(record: BaseModel, path: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for spec in describe_model(type(record)).fields:
        value = getattr(record, spec.name, None)
        field_path = join_path(path, spec.path)

        if spec.kind is FieldKind.SCALAR:
            if not is_absent(value):
                result[spec.path] = expand_scalar(value, spec.scalar_type, field_path)

        elif spec.kind is FieldKind.RECORD:
            if is_absent(value):
                result[spec.path] = {}
            else:
                result[spec.path] = _expand_nested(value, spec, field_path)

        elif spec.kind is FieldKind.OPTIONAL_RECORD:
            if not is_absent(value):
                result[spec.path] = _expand_nested(value, spec, field_path)

        elif spec.kind is FieldKind.MAPPING:
            if is_absent(value):
                continue
            if not isinstance(value, dict):
                raise ShapeMismatchError(field_path, "mapping", value)
            expanded = {
                key: expand_scalar(item, spec.scalar_type, join_path(field_path, key))
                for key, item in value.items()
                if not is_absent(item)
            }
            if expanded:
                result[spec.path] = expanded

        elif spec.kind is FieldKind.SEQUENCE:
            if is_absent(value):
                continue
            if not isinstance(value, (list, tuple)):
                raise ShapeMismatchError(field_path, "sequence", value)
            result[spec.path] = _expand_sequence(value, spec, field_path)

    return result


def _expand_nested(value: Any, spec: FieldSpec, path: str) -> dict[str, Any]:
    if not isinstance(value, spec.record_type):
        raise ShapeMismatchError(path, spec.record_type.__name__, value)
    return _expand_record(value, path)


def _expand_sequence(items: list | tuple, spec: FieldSpec, path: str) -> list[Any]:
    expanded = []
    for index, item in enumerate(items):
        item_path = f"{path}[{index}]"
        if is_absent(item):
            expanded.append(None)
            continue
        if spec.element_is_record:
            expanded.append(_expand_nested(item, spec, item_path))
        else:
            expanded.append(expand_scalar(item, spec.scalar_type, item_path))
    return expanded


def expand_scalar(value: Any, scalar_type: type | None, path: str) -> Any:
    """
    Convert a scalar to its wire form.

    Args:
        value: Scalar held by the model
        scalar_type: Declared scalar type of the field
        path: Manifest path, used in errors

    Returns:
        The wire value; numbers are returned as int
    """
    if scalar_type is bool or isinstance(value, bool):
        if not isinstance(value, bool) or scalar_type not in (bool, None):
            raise ShapeMismatchError(path, _type_name(scalar_type), value)
        return value

    if scalar_type is str:
        if not isinstance(value, str):
            raise ShapeMismatchError(path, "str", value)
        return value

    if isinstance(value, float):
        if not value.is_integer():
            raise UnsupportedValueError(
                path, value, "only integral numbers are supported"
            )
        value = int(value)

    if not isinstance(value, int):
        raise ShapeMismatchError(path, _type_name(scalar_type), value)

    if not INT64_MIN <= value <= INT64_MAX:
        raise UnsupportedValueError(path, value, "out of 64-bit integer range")
    return value


def _type_name(scalar_type: type | None) -> str:
    return scalar_type.__name__ if scalar_type is not None else "scalar"
