"""
Story playback
Read-only projection of persisted overlays onto a viewer canvas, plus story-group navigation
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set

from .geometry import CanvasRect, to_pixels
from .model import Overlay


class PlacedOverlay(NamedTuple):
    id: str
    kind: str
    value: str
    x: float
    y: float
    scale: float
    highlight: bool


def render(overlays: Iterable[Overlay], viewer: Optional[CanvasRect]) -> List[PlacedOverlay]:
    """Project overlays to viewer pixels in z-order; nothing is placed until the viewer is measured."""
    if viewer is None or not viewer.is_measured:
        return []
    placed = []
    for overlay in overlays:
        x, y = to_pixels(overlay.normalized_x, overlay.normalized_y, viewer)
        placed.append(PlacedOverlay(
            id=overlay.id,
            kind=overlay.kind,
            value=overlay.value,
            x=x,
            y=y,
            scale=overlay.scale,
            highlight=overlay.kind == 'text' and overlay.text_style == 'highlight',
        ))
    return placed


def _created_at(story: Dict[str, Any]) -> datetime:
    value = story.get('created_at')
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def group_stories_by_user(stories: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One bucket per author, newest story first; buckets ordered by their newest story."""
    grouped: Dict[Any, Dict[str, Any]] = {}
    for story in stories:
        user_id = story.get('user_id')
        if not user_id:
            continue
        bucket = grouped.get(user_id)
        if bucket is None:
            bucket = {'user_id': user_id, 'profile': story.get('profile'), 'stories': []}
            grouped[user_id] = bucket
        bucket['stories'].append(story)

    for bucket in grouped.values():
        bucket['stories'].sort(key=_created_at, reverse=True)
    return sorted(grouped.values(), key=lambda b: _created_at(b['stories'][0]), reverse=True)


def order_story_groups(groups: List[Dict[str, Any]], seen: Set[Any]) -> List[Dict[str, Any]]:
    """Groups with unseen stories come first, then newest first."""
    def key(group):
        has_unseen = any(s['id'] not in seen for s in group['stories'])
        return (0 if has_unseen else 1, -_created_at(group['stories'][0]).timestamp())
    return sorted(groups, key=key)


class StoryViewer:
    """Walks one author's stories oldest to newest, starting at the first unseen one."""

    def __init__(self, stories: Iterable[Dict[str, Any]], seen: Optional[Set[Any]] = None):
        self.stories = sorted(stories, key=_created_at)
        self.seen = seen if seen is not None else set()
        self.index = self._start_index()
        self.closed = not self.stories
        self._mark_seen()

    def _start_index(self) -> int:
        for i, story in enumerate(self.stories):
            if story['id'] not in self.seen:
                return i
        return max(len(self.stories) - 1, 0)

    def _mark_seen(self):
        if not self.closed:
            self.seen.add(self.stories[self.index]['id'])

    @property
    def current(self) -> Optional[Dict[str, Any]]:
        if self.closed:
            return None
        return self.stories[self.index]

    def next(self) -> Optional[Dict[str, Any]]:
        if self.closed:
            return None
        if self.index < len(self.stories) - 1:
            self.index += 1
            self._mark_seen()
        else:
            self.closed = True
        return self.current

    def previous(self) -> Optional[Dict[str, Any]]:
        if self.closed:
            return None
        if self.index > 0:
            self.index -= 1
        return self.current

    def close(self):
        self.closed = True
