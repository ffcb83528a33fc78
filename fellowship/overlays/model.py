"""
Story overlay model
Typed text/emoji/sticker annotations and the immutable list that holds them while a story is authored
"""
import uuid
from collections.abc import Sequence
from typing import Any, Iterable, Iterator, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .geometry import clamp

OverlayKind = Literal['text', 'emoji', 'sticker']
TextStyle = Literal['normal', 'highlight']

STICKER_LABELS = ('AMEN', 'GOD IS GOOD', 'PRAYING', 'BLESSED')
EMOJI_PALETTE = ('🙏', '❤️', '👍', '😇')

MIN_SCALE = 0.5
MAX_SCALE = 2.5
DEFAULT_SCALE = 1.0

# Default anchors per kind (normalized x, y)
TEXT_ANCHOR = (0.5, 0.5)
EMOJI_ANCHOR = (0.5, 0.8)
STICKER_ANCHOR = (0.5, 0.2)


def new_overlay_id() -> str:
    return uuid.uuid4().hex


class Overlay(BaseModel):
    """One positioned annotation; serializes to the persisted camelCase JSON shape."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    id: str = Field(min_length=1)
    kind: OverlayKind = Field(alias='type')
    value: str
    normalized_x: float = Field(alias='normalizedX', allow_inf_nan=False)
    normalized_y: float = Field(alias='normalizedY', allow_inf_nan=False)
    scale: float = Field(default=DEFAULT_SCALE, allow_inf_nan=False)
    text_style: Optional[TextStyle] = Field(default=None, alias='textStyle')

    @model_validator(mode='before')
    @classmethod
    def _drop_style_for_non_text(cls, data: Any) -> Any:
        if isinstance(data, dict):
            kind = data.get('type', data.get('kind'))
            if kind != 'text':
                data = {k: v for k, v in data.items() if k not in ('textStyle', 'text_style')}
        return data

    @field_validator('normalized_x', 'normalized_y')
    @classmethod
    def _clamp_unit(cls, v: float) -> float:
        return clamp(v, 0.0, 1.0)

    @field_validator('scale', mode='before')
    @classmethod
    def _default_scale(cls, v: Any) -> Any:
        return DEFAULT_SCALE if v is None else v

    @field_validator('scale')
    @classmethod
    def _clamp_scale(cls, v: float) -> float:
        return clamp(v, MIN_SCALE, MAX_SCALE)

    @field_validator('value')
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('overlay value must not be blank')
        return v

    @model_validator(mode='after')
    def _sticker_vocabulary(self) -> 'Overlay':
        if self.kind == 'sticker' and self.value not in STICKER_LABELS:
            raise ValueError(f'unknown sticker label: {self.value!r}')
        return self

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class OverlayList(Sequence):
    """Ordered overlays for one story (list order is z-order).

    Every operation returns a new list and leaves the receiver untouched.
    Invalid input (blank text, unknown id, unknown sticker) gives back an equal list.
    """

    __slots__ = ('_items',)

    def __init__(self, items: Iterable[Overlay] = ()):
        self._items = tuple(items)
        ids = [o.id for o in self._items]
        if len(ids) != len(set(ids)):
            raise ValueError('overlay ids must be unique')

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Overlay]:
        return iter(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, OverlayList):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f'OverlayList({list(self._items)!r})'

    def get(self, overlay_id: str) -> Optional[Overlay]:
        for overlay in self._items:
            if overlay.id == overlay_id:
                return overlay
        return None

    def _append(self, kind: str, value: str, anchor, overlay_id: Optional[str] = None, **extra) -> 'OverlayList':
        overlay = Overlay(
            id=overlay_id or new_overlay_id(),
            kind=kind,
            value=value,
            normalized_x=anchor[0],
            normalized_y=anchor[1],
            scale=DEFAULT_SCALE,
            **extra,
        )
        return OverlayList(self._items + (overlay,))

    def _replace(self, overlay_id: str, **changes) -> 'OverlayList':
        if self.get(overlay_id) is None:
            return self
        return OverlayList(
            o.model_copy(update=changes) if o.id == overlay_id else o for o in self._items
        )

    def add_text(self, value: str, style_mode: TextStyle = 'normal', overlay_id: Optional[str] = None) -> 'OverlayList':
        value = (value or '').strip()
        if not value:
            return self
        if style_mode not in ('normal', 'highlight'):
            style_mode = 'normal'
        return self._append('text', value, TEXT_ANCHOR, overlay_id, text_style=style_mode)

    def add_emoji(self, glyph: str, overlay_id: Optional[str] = None) -> 'OverlayList':
        glyph = (glyph or '').strip()
        if not glyph:
            return self
        return self._append('emoji', glyph, EMOJI_ANCHOR, overlay_id)

    def add_sticker(self, label: str, overlay_id: Optional[str] = None) -> 'OverlayList':
        if label not in STICKER_LABELS:
            return self
        return self._append('sticker', label, STICKER_ANCHOR, overlay_id)

    def update_position(self, overlay_id: str, nx: float, ny: float) -> 'OverlayList':
        return self._replace(
            overlay_id,
            normalized_x=clamp(nx, 0.0, 1.0),
            normalized_y=clamp(ny, 0.0, 1.0),
        )

    def adjust_scale(self, overlay_id: str, delta: float) -> 'OverlayList':
        overlay = self.get(overlay_id)
        if overlay is None:
            return self
        return self._replace(overlay_id, scale=clamp(overlay.scale + delta, MIN_SCALE, MAX_SCALE))

    def remove(self, overlay_id: str) -> 'OverlayList':
        if self.get(overlay_id) is None:
            return self
        return OverlayList(o for o in self._items if o.id != overlay_id)

    def clear(self) -> 'OverlayList':
        return OverlayList()

    def to_json(self) -> List[dict]:
        return [o.to_json() for o in self._items]

    @classmethod
    def from_json(cls, rows: Optional[Iterable[dict]]) -> 'OverlayList':
        """Parse a persisted overlay list; raises pydantic.ValidationError on a bad row."""
        return cls(Overlay.model_validate(row) for row in (rows or ()))
