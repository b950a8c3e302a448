"""Field types and the shared base model for chart records.

Every record is a pydantic model whose fields carry their .qua key as an
alias, e.g. ``map_id: I32 = Field(-1, alias="MapId")``. Those declarations
are the field table: key, type, range, default and extra accepted keys.

On top of pydantic's own rules:

- null values are dropped before validation, so ``Title: ~`` falls back to
  the field default, and a required field that is null reports as missing;
- numbers are strict (no bools, no numeric strings, no truncated floats),
  while string fields accept numeric scalars such as ``Title: 1999``;
- keys a model does not know are ignored and logged at DEBUG.

Validation failures are raised as :class:`~qua_format.errors.QuaFormatError`
whose location names the offending key, e.g. ``HitObjects[3].Lane``.
"""
from enum import Enum
from functools import lru_cache
import logging
from typing import Annotated, Any, get_args

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    ValidationError,
    model_validator,
)
from pydantic.fields import FieldInfo

from .errors import QuaFormatError

LOG = logging.getLogger(__name__)

I32 = Annotated[int, Field(strict=True, ge=-(2 ** 31), le=2 ** 31 - 1)]
U8 = Annotated[int, Field(strict=True, ge=0, le=255)]
Float = Annotated[float, Field(strict=True)]
Bool = Annotated[bool, Field(strict=True)]


def by_name(enum_cls: type[Enum]):
    """Enum field read and written by member name."""
    names = ", ".join(enum_cls.__members__)

    def validate(value):
        if isinstance(value, enum_cls):
            return value
        if isinstance(value, str) and value in enum_cls.__members__:
            return enum_cls[value]
        raise ValueError(f"expected one of {names}")

    return Annotated[enum_cls, PlainValidator(validate), PlainSerializer(lambda member: member.name)]


def by_value(enum_cls: type[Enum]):
    """Enum field written by member value. Member names are also accepted."""
    values = ", ".join(str(member.value) for member in enum_cls)
    names = ", ".join(enum_cls.__members__)

    def validate(value):
        if isinstance(value, enum_cls):
            return value
        if isinstance(value, str) and value in enum_cls.__members__:
            return enum_cls[value]
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return enum_cls(value)
            except ValueError:
                pass
        raise ValueError(f"expected one of {values} ({names})")

    return Annotated[enum_cls, PlainValidator(validate), PlainSerializer(lambda member: member.value)]


def _field_keys(name: str, info: FieldInfo) -> set:
    keys = {name}
    if info.alias:
        keys.add(info.alias)
    if isinstance(info.validation_alias, str):
        keys.add(info.validation_alias)
    elif isinstance(info.validation_alias, AliasChoices):
        keys.update(choice for choice in info.validation_alias.choices if isinstance(choice, str))
    return keys


@lru_cache(maxsize=None)
def known_keys(model_cls: type[BaseModel]) -> frozenset:
    """Every key ``model_cls`` accepts: field names, aliases and alias choices."""
    keys = set()
    for name, info in model_cls.model_fields.items():
        keys |= _field_keys(name, info)
    return frozenset(keys)


def _item_model(info: FieldInfo | None) -> type[BaseModel] | None:
    if info is None:
        return None
    for candidate in (info.annotation, *get_args(info.annotation)):
        if isinstance(candidate, type) and issubclass(candidate, BaseModel):
            return candidate
    return None


def location_of(model_cls: type[BaseModel], loc: tuple) -> str | None:
    """Spell a pydantic error ``loc`` with .qua keys, e.g. ``HitObjects[3].Lane``."""
    location = ""
    current = model_cls
    for part in loc:
        if isinstance(part, int):
            location += f"[{part}]"
            continue
        info = None
        if current is not None:
            info = next(
                (i for n, i in current.model_fields.items() if part in _field_keys(n, i)),
                None,
            )
        key = info.alias if info is not None and info.alias else str(part)
        location = f"{location}.{key}" if location else key
        current = _item_model(info)
    return location or None


def format_error(model_cls: type[BaseModel], error: ValidationError) -> QuaFormatError:
    """Turn the first pydantic error into a :class:`QuaFormatError`."""
    first = error.errors(include_url=False)[0]
    return QuaFormatError(first["msg"], location_of(model_cls, first["loc"]))


class QuaModel(BaseModel):
    """Base for every .qua record."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        # an edited record is checked again before it is written
        revalidate_instances="always",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        unknown = [k for k in data if k not in known_keys(cls)]
        if unknown:
            LOG.debug("Ignoring unknown keys %s in %s", unknown, cls.__name__)
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_mapping(cls, data: Any):
        """Validate a parsed YAML mapping (or a record) into ``cls``."""
        try:
            return cls.model_validate(data)
        except ValidationError as ex:
            raise format_error(cls, ex) from ex

    def to_mapping(self) -> dict:
        """Check the record and return it as a plain mapping keyed by .qua keys."""
        checked = type(self).from_mapping(self)
        return checked.model_dump(by_alias=True)
