"""
Canvas coordinate mapping
Converts between pixel positions on a measured canvas and normalized [0,1] coordinates
"""
from typing import NamedTuple, Optional, Tuple


class CanvasRect(NamedTuple):
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def is_measured(self) -> bool:
        return self.width > 0 and self.height > 0


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def to_normalized(pixel_x: float, pixel_y: float, rect: Optional[CanvasRect],
                  previous: Tuple[float, float] = (0.5, 0.5)) -> Tuple[float, float]:
    """Map a pixel position inside rect to normalized coordinates.

    An unmeasured canvas gives back ``previous`` so the overlay stays put for that event.
    """
    if rect is None or not rect.is_measured:
        return previous
    nx = clamp((pixel_x - rect.left) / rect.width, 0.0, 1.0)
    ny = clamp((pixel_y - rect.top) / rect.height, 0.0, 1.0)
    return nx, ny


def to_pixels(nx: float, ny: float, rect: CanvasRect) -> Tuple[float, float]:
    return rect.left + nx * rect.width, rect.top + ny * rect.height
