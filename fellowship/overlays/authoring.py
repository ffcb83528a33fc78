"""
Story authoring controller
Turns drag gestures and toolbar actions into overlay list operations
"""
import logging
from enum import Enum
from typing import List, Optional

from .geometry import CanvasRect, to_normalized
from .model import OverlayList, TextStyle

logger = logging.getLogger(__name__)

SCALE_STEP = 0.1


class AuthoringState(Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    TEXT_ENTRY = "text_entry"


class OverlaysLocked(Exception):
    """Raised when a published story's overlays are edited."""


class AuthoringController:
    """
    Per-session authoring state for one story preview.
    Only one drag is active at a time; the overlay list is swapped, never edited in place.
    """

    def __init__(self, overlays: Optional[OverlayList] = None):
        self.overlays = overlays if overlays is not None else OverlayList()
        self.state = AuthoringState.IDLE
        self.selected_id: Optional[str] = None
        self.draft = ""
        self.text_style_mode: TextStyle = "normal"
        self.canvas: Optional[CanvasRect] = None
        self.published = False

    def _check_open(self):
        if self.published:
            raise OverlaysLocked("story already published")

    def measure_canvas(self, rect: CanvasRect):
        self.canvas = rect

    # ---- gestures ----

    def begin_drag(self, overlay_id: str):
        self._check_open()
        if self.overlays.get(overlay_id) is None:
            return
        self.state = AuthoringState.SELECTING
        self.selected_id = overlay_id

    def drag_to(self, pixel_x: float, pixel_y: float):
        self._check_open()
        if self.state is not AuthoringState.SELECTING or self.selected_id is None:
            return
        overlay = self.overlays.get(self.selected_id)
        if overlay is None:
            return
        nx, ny = to_normalized(pixel_x, pixel_y, self.canvas,
                               previous=(overlay.normalized_x, overlay.normalized_y))
        self.overlays = self.overlays.update_position(self.selected_id, nx, ny)

    def release(self):
        if self.state is AuthoringState.SELECTING:
            self.state = AuthoringState.IDLE

    def select(self, overlay_id: str):
        if self.overlays.get(overlay_id) is not None:
            self.selected_id = overlay_id

    def clear_selection(self):
        self.selected_id = None

    # ---- text entry ----

    def open_text_entry(self):
        self._check_open()
        self.state = AuthoringState.TEXT_ENTRY

    def set_draft(self, text: str):
        if self.state is AuthoringState.TEXT_ENTRY:
            self.draft = text or ""

    def toggle_text_style(self):
        self.text_style_mode = "normal" if self.text_style_mode == "highlight" else "highlight"

    def submit_text(self):
        self._check_open()
        if self.state is not AuthoringState.TEXT_ENTRY:
            return
        # Blank drafts are discarded by add_text
        self.overlays = self.overlays.add_text(self.draft, self.text_style_mode)
        self.draft = ""
        self.state = AuthoringState.IDLE

    def cancel_text_entry(self):
        if self.state is AuthoringState.TEXT_ENTRY:
            self.draft = ""
            self.state = AuthoringState.IDLE

    # ---- toolbar ----

    def add_emoji(self, glyph: str):
        self._check_open()
        self.overlays = self.overlays.add_emoji(glyph)

    def add_sticker(self, label: str):
        self._check_open()
        self.overlays = self.overlays.add_sticker(label)

    def adjust_selected_scale(self, delta: float):
        self._check_open()
        if self.selected_id is None:
            return
        self.overlays = self.overlays.adjust_scale(self.selected_id, delta)

    def grow_selected(self):
        self.adjust_selected_scale(SCALE_STEP)

    def shrink_selected(self):
        self.adjust_selected_scale(-SCALE_STEP)

    def delete_selected(self):
        self._check_open()
        if self.selected_id is None:
            return
        self.overlays = self.overlays.remove(self.selected_id)
        self.selected_id = None
        if self.state is AuthoringState.SELECTING:
            self.state = AuthoringState.IDLE

    def clear(self):
        self._check_open()
        self.overlays = self.overlays.clear()
        self.draft = ""
        self.text_style_mode = "normal"
        self.selected_id = None
        self.state = AuthoringState.IDLE

    def publish(self) -> List[dict]:
        """Freeze the session and return the overlay JSON to persist with the story."""
        self._check_open()
        self.published = True
        self.state = AuthoringState.IDLE
        self.selected_id = None
        logger.info({'msg': 'overlays_published', 'count': len(self.overlays)})
        return self.overlays.to_json()
