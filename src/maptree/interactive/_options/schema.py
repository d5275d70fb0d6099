"""Schema for the outline options.

The options dialog is generated from this schema. Field titles, descriptions and
limits are taken from the pydantic `Field` definitions. Options for the pyqtgraph
Parameter tree can be passed by prefixing them with "ui_" in `json_schema_extra`, and
"ui_type" overrides the automatically detected parameter type.

For spinboxes, limits provided with `ge`, `le` are used to set the minimum and maximum
values of the spinbox.
"""

from __future__ import annotations

import typing

from pydantic import BaseModel, Field, model_validator

if typing.TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

__all__ = [
    "AppOptions",
    "DragOptions",
    "IOOptions",
    "OutlineOptions",
    "nest_paths",
    "option_paths",
]


class DragOptions(BaseModel):
    """Drop zone geometry used while dragging over a row."""

    before_fraction: float = Field(
        default=0.28,
        title="Before zone",
        description=(
            "Pointer positions above this fraction of the row height drop the dragged "
            "maps before the row."
        ),
        ge=0.0,
        le=1.0,
        json_schema_extra={"ui_step": 0.01},
    )
    after_fraction: float = Field(
        default=0.72,
        title="After zone",
        description=(
            "Pointer positions below this fraction of the row height drop the dragged "
            "maps after the row."
        ),
        ge=0.0,
        le=1.0,
        json_schema_extra={"ui_step": 0.01},
    )

    @model_validator(mode="after")
    def _check_order(self) -> DragOptions:
        if self.before_fraction > self.after_fraction:
            raise ValueError("The before zone must end above the after zone")
        return self


class OutlineOptions(BaseModel):
    show_ids: bool = Field(
        default=False,
        title="Show IDs",
        description="Prefix each map name with its ID.",
    )


class IOOptions(BaseModel):
    """Options for saving the map list."""

    backup: bool = Field(
        default=True,
        title="Backup",
        description="Keep a timestamped copy of MapInfos.json before overwriting it.",
    )
    indent: int = Field(
        default=0,
        title="Indent",
        description="Indentation of the saved JSON. 0 writes a single line.",
        ge=0,
        le=8,
    )


class AppOptions(BaseModel):
    """Root model for all options."""

    drag: DragOptions = Field(default_factory=DragOptions, title="Drag and drop")
    outline: OutlineOptions = Field(default_factory=OutlineOptions, title="Outline")
    io: IOOptions = Field(default_factory=IOOptions, title="Saving")


def option_paths(
    model: BaseModel, prefix: str = ""
) -> Iterator[tuple[str, typing.Any]]:
    """Yield ``("group/field", value)`` pairs for every leaf option of ``model``."""
    for name in type(model).model_fields:
        value = getattr(model, name)
        path = f"{prefix}/{name}" if prefix else name
        if isinstance(value, BaseModel):
            yield from option_paths(value, path)
        else:
            yield path, value


def nest_paths(flat: Mapping[str, typing.Any]) -> dict[str, typing.Any]:
    """Rebuild the nested option dictionary from ``"group/field"`` keys."""
    nested: dict[str, typing.Any] = {}
    for path, value in flat.items():
        *groups, leaf = path.split("/")
        target = nested
        for group in groups:
            target = target.setdefault(group, {})
        target[leaf] = value
    return nested
