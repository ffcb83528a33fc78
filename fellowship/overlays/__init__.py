from .geometry import CanvasRect, clamp, to_normalized, to_pixels  # noqa: F401
from .model import (  # noqa: F401
    EMOJI_PALETTE,
    MAX_SCALE,
    MIN_SCALE,
    STICKER_LABELS,
    Overlay,
    OverlayList,
)
from .authoring import AuthoringController, AuthoringState, OverlaysLocked  # noqa: F401
from .playback import PlacedOverlay, StoryViewer, group_stories_by_user, order_story_groups, render  # noqa: F401
