"""Conversion between `AppOptions` and a pyqtgraph Parameter tree.

Each nested model of `AppOptions` becomes a group and each leaf field a parameter. The
parameter type follows the field annotation, numeric limits come from ``ge``/``le``, and
``ui_*`` keys in ``json_schema_extra`` are passed to the parameter with the prefix
removed.
"""

from __future__ import annotations

__all__ = ["make_parameter", "parameter_to_options"]

import math
import typing

import pyqtgraph.parametertree
from pydantic import BaseModel

from maptree.interactive._options.schema import AppOptions, nest_paths, option_paths

if typing.TYPE_CHECKING:
    from pydantic.fields import FieldInfo

_PARAM_TYPES: dict[type, str] = {bool: "bool", int: "int", float: "float", str: "str"}


def _field_limits(field: FieldInfo) -> tuple[float, float] | None:
    """Spinbox limits from the ``ge``/``le`` constraints of a field."""
    lo, hi = -math.inf, math.inf
    for constraint in field.metadata:
        lo = getattr(constraint, "ge", lo)
        hi = getattr(constraint, "le", hi)
    if lo == -math.inf and hi == math.inf:
        return None
    return (lo, hi)


def _leaf_param(
    name: str, field: FieldInfo, value: typing.Any, default: typing.Any
) -> dict[str, typing.Any]:
    param: dict[str, typing.Any] = {
        "name": name,
        "title": field.title or name.replace("_", " ").capitalize(),
        "type": _PARAM_TYPES.get(typing.cast("type", field.annotation), "str"),
        "value": value,
        "default": default,
    }
    if field.description:
        param["tip"] = field.description
    if param["type"] in ("int", "float"):
        limits = _field_limits(field)
        if limits is not None:
            param["limits"] = limits

    extra = field.json_schema_extra
    if isinstance(extra, dict):
        param.update(
            {k.removeprefix("ui_"): v for k, v in extra.items() if k.startswith("ui_")}
        )
    return param


def _group_children(model: BaseModel, defaults: BaseModel) -> list[dict]:
    children: list[dict] = []
    for name, field in type(model).model_fields.items():
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            children.append(
                {
                    "name": name,
                    "title": field.title or name.capitalize(),
                    "type": "group",
                    "tip": field.description,
                    "children": _group_children(value, getattr(defaults, name)),
                }
            )
        else:
            children.append(_leaf_param(name, field, value, getattr(defaults, name)))
    return children


def make_parameter(
    opts: AppOptions | None = None,
) -> pyqtgraph.parametertree.Parameter:
    """Build the Parameter tree showing ``opts``, or the defaults."""
    if opts is None:
        opts = AppOptions()
    return pyqtgraph.parametertree.Parameter.create(
        name="Settings", type="group", children=_group_children(opts, AppOptions())
    )


def parameter_to_options(param: pyqtgraph.parametertree.Parameter) -> AppOptions:
    """Read the values shown in a Parameter tree back into `AppOptions`.

    Options missing from the tree keep their default value. Raises
    `pydantic.ValidationError` if the values in the tree are inconsistent.
    """
    flat: dict[str, typing.Any] = {}
    for path, default in option_paths(AppOptions()):
        try:
            flat[path] = param.child(*path.split("/")).value()
        except KeyError:
            flat[path] = default
    return AppOptions.model_validate(nest_paths(flat))
