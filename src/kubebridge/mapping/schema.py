"""
Field metadata for typed models.

A typed model is a pydantic ``BaseModel``. The manifest path of each field is
its alias, or the attribute name when no alias is declared, so the usual
camelCase alias convention doubles as the mapping declaration:

    class ConfigMapModel(BaseModel):
        model_config = {"populate_by_name": True}

        id: str | None = IdentityField()
        metadata: ObjectMetadata = Field(default_factory=ObjectMetadata)
        immutable: bool | None = None
        binary_data: dict[str, str] | None = Field(None, alias="binaryData")
        timeouts: OperationTimeouts | None = UnmappedField(None)

The semantic kind of each field is inferred from its annotation:

- ``str | None``, ``bool | None``, ``int | None``, ``float | None``: scalar
- a ``BaseModel`` subclass: nested record
- ``SomeModel | None``: optional nested record
- ``dict[str, <scalar>]``: mapping
- ``list[<scalar>]`` or ``list[SomeModel]``: sequence

Descriptions are computed once per class and memoized.
"""

import functools
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo

from kubebridge.constants import MANIFEST_PATH_KEY
from kubebridge.errors import ModelDefinitionError

SCALAR_TYPES: tuple[type, ...] = (str, bool, int, float)


class UnknownValue:
    """Marker for a value that is not known yet; mapped exactly like None."""

    _instance: "UnknownValue | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN = UnknownValue()


def is_absent(value: Any) -> bool:
    """True for values that must not appear on the wire."""
    return value is None or value is UNKNOWN


class FieldKind(Enum):
    SCALAR = "scalar"
    RECORD = "record"
    OPTIONAL_RECORD = "optional_record"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class FieldSpec:
    """How one model attribute maps onto a manifest key."""

    name: str
    path: str
    kind: FieldKind
    scalar_type: type | None = None
    record_type: type[BaseModel] | None = None

    @property
    def element_is_record(self) -> bool:
        return self.record_type is not None


@dataclass(frozen=True)
class ModelDescription:
    model: type[BaseModel]
    fields: tuple[FieldSpec, ...]
    identity: str | None = None

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)


def IdentityField(**kwargs: Any) -> Any:
    """
    Declare the synthetic identity field of a model.

    The field never appears in manifests. The CRUD orchestrator sets it to
    the identity token after Create and Read.
    """
    return Field(None, json_schema_extra={MANIFEST_PATH_KEY: ""}, **kwargs)


def UnmappedField(default: Any = None, **kwargs: Any) -> Any:
    """Declare a field that takes no part in manifest mapping."""
    if "default_factory" in kwargs:
        return Field(json_schema_extra={MANIFEST_PATH_KEY: None}, **kwargs)
    return Field(default, json_schema_extra={MANIFEST_PATH_KEY: None}, **kwargs)


_UNSET = object()


def _declared_path(info: FieldInfo) -> Any:
    extra = info.json_schema_extra
    if isinstance(extra, dict) and MANIFEST_PATH_KEY in extra:
        return extra[MANIFEST_PATH_KEY]
    return _UNSET


def _strip_optional(annotation: Any) -> tuple[Any, bool]:
    """Remove None and UnknownValue members from a union annotation."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [
            arg
            for arg in typing.get_args(annotation)
            if arg is not type(None) and arg is not UnknownValue
        ]
        optional = len(members) != len(typing.get_args(annotation))
        if len(members) == 1:
            return members[0], optional
        return typing.Union[tuple(members)], optional
    return annotation, False


def _is_record(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _is_scalar(annotation: Any) -> bool:
    return annotation in SCALAR_TYPES


def _classify(model: type[BaseModel], name: str, path: str, annotation: Any) -> FieldSpec:
    inner, optional = _strip_optional(annotation)

    if _is_scalar(inner):
        return FieldSpec(name, path, FieldKind.SCALAR, scalar_type=inner)

    if _is_record(inner):
        kind = FieldKind.OPTIONAL_RECORD if optional else FieldKind.RECORD
        return FieldSpec(name, path, kind, record_type=inner)

    origin = typing.get_origin(inner)
    args = typing.get_args(inner)

    if origin is dict:
        if len(args) != 2 or args[0] is not str:
            raise ModelDefinitionError(model, name, "mapping keys must be str")
        value_type, _ = _strip_optional(args[1])
        if not _is_scalar(value_type):
            raise ModelDefinitionError(
                model, name, "mapping values must be str, bool, int or float"
            )
        return FieldSpec(name, path, FieldKind.MAPPING, scalar_type=value_type)

    if origin is list:
        if len(args) != 1:
            raise ModelDefinitionError(model, name, "sequence needs an element type")
        element, _ = _strip_optional(args[0])
        if _is_scalar(element):
            return FieldSpec(name, path, FieldKind.SEQUENCE, scalar_type=element)
        if _is_record(element):
            return FieldSpec(name, path, FieldKind.SEQUENCE, record_type=element)
        raise ModelDefinitionError(
            model, name, "sequence elements must be scalars or models"
        )

    raise ModelDefinitionError(model, name, f"unsupported annotation {annotation!r}")


@functools.cache
def describe_model(model: type[BaseModel]) -> ModelDescription:
    """
    Describe how the fields of a model class map onto manifest keys.

    Args:
        model: Typed model class

    Returns:
        ModelDescription listing mapped fields in declaration order and the
        name of the identity field, if any

    Raises:
        ModelDefinitionError: If an annotation is unsupported, two fields share
            a manifest path, or more than one identity field is declared
    """
    specs: list[FieldSpec] = []
    identity: str | None = None
    seen: dict[str, str] = {}

    for name, info in model.model_fields.items():
        declared = _declared_path(info)
        if declared is None:
            continue
        if declared == "":
            if identity is not None:
                raise ModelDefinitionError(
                    model, name, f"second identity field (first is '{identity}')"
                )
            identity = name
            continue

        if declared is _UNSET:
            path = info.alias or name
        else:
            path = declared

        if path in seen:
            raise ModelDefinitionError(
                model, name, f"manifest path '{path}' already used by '{seen[path]}'"
            )
        seen[path] = name
        specs.append(_classify(model, name, path, info.annotation))

    return ModelDescription(model=model, fields=tuple(specs), identity=identity)


def identity_field_name(model: type[BaseModel]) -> str | None:
    return describe_model(model).identity


def get_identity(model: BaseModel) -> str | None:
    """Return the identity token stored on a model, if the model has one."""
    name = identity_field_name(type(model))
    if name is None:
        return None
    value = getattr(model, name, None)
    return None if is_absent(value) else value


def set_identity(model: BaseModel, token: str) -> None:
    """Store an identity token on a model's identity field, if declared."""
    name = identity_field_name(type(model))
    if name is not None:
        setattr(model, name, token)
