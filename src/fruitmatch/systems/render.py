from collections import deque
from typing import Deque, Optional, Tuple

from esper import World

from fruitmatch.components.board import GridSnapshot
from fruitmatch.components.game_state import GameMode
from fruitmatch.components.tile import SpecialKind
from fruitmatch.constants import (
    BOARD_MAX_HEIGHT_PCT,
    BOARD_MAX_WIDTH_PCT,
    BOTTOM_MARGIN,
    STATUS_BAR_HEIGHT,
    TILE_SIZE,
)
from fruitmatch.events.bus import (
    EventBus,
    EVENT_BOARD_SNAPSHOT,
    EVENT_BOARD_STUCK,
    EVENT_TILE_DESELECTED,
    EVENT_TILE_SELECTED,
    EVENT_TILE_SWAP_REQUEST,
)
from fruitmatch.systems.board_ops import get_board, get_tile_registry
from fruitmatch.utils.game_state import get_game_state, get_level_state

PADDING = 4
SPECIAL_MARKERS = {
    SpecialKind.BOMB: "B",
    SpecialKind.LINE_H: "-",
    SpecialKind.LINE_V: "|",
    SpecialKind.COLOR: "*",
}


class RenderSystem:
    """Replays board snapshots at their presentation delay and draws the current frame.

    The engine resolves a swap in one call; this system holds the resulting
    snapshots in a queue and shows each for its delay, so the window must
    keep input closed while ``animating`` is true.
    """

    def __init__(self, world: World, event_bus: EventBus, window):
        self.world = world
        self.event_bus = event_bus
        self.window = window
        self.event_bus.subscribe(EVENT_BOARD_SNAPSHOT, self.on_board_snapshot)
        self.event_bus.subscribe(EVENT_BOARD_STUCK, self.on_board_stuck)
        self.event_bus.subscribe(EVENT_TILE_SELECTED, self.on_tile_selected)
        self.event_bus.subscribe(EVENT_TILE_DESELECTED, self.on_tile_deselected)
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)
        self.selected: Optional[Tuple[int, int]] = None
        self.banner: Optional[str] = None
        self._queue: Deque = deque()
        self._current: Optional[GridSnapshot] = None
        self._remaining = 0.0
        self._tile_size = TILE_SIZE
        self._last_window_size = (self.window.width, self.window.height)
        self._recalculate_tile_size()

    @property
    def animating(self) -> bool:
        return bool(self._queue) or self._remaining > 0

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_board_snapshot(self, sender, **kwargs):
        snapshot = kwargs.get('snapshot')
        if snapshot is None:
            return
        if snapshot.label == "level_start":
            # A new level discards whatever was still playing.
            self._queue.clear()
            self._remaining = 0.0
            self.banner = None
            self._current = snapshot.cells
            return
        self._queue.append(snapshot)
        if self._remaining <= 0:
            self._advance()

    def on_board_stuck(self, sender, **kwargs):
        self.banner = kwargs.get('message')

    def on_tile_selected(self, sender, **kwargs):
        self.selected = (kwargs.get('row'), kwargs.get('col'))

    def on_tile_deselected(self, sender, **kwargs):
        self.selected = None

    def on_swap_request(self, sender, **kwargs):
        self.selected = None

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        if self._remaining <= 0 and not self._queue:
            return
        self._remaining -= dt
        while self._remaining <= 0 and self._queue:
            self._advance()
        if self._remaining <= 0 and not self._queue:
            self._remaining = 0.0
            self.banner = None

    def _advance(self) -> None:
        snapshot = self._queue.popleft()
        self._current = snapshot.cells
        self._remaining += snapshot.delay

    def frame(self) -> GridSnapshot:
        if self._current is None:
            self._current = get_board(self.world).snapshot()
        return self._current

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def notify_resize(self, width: int, height: int):
        self._last_window_size = (width, height)
        self._recalculate_tile_size()

    def _recalculate_tile_size(self):
        board = get_board(self.world)
        max_board_w = self.window.width * BOARD_MAX_WIDTH_PCT
        max_board_h = (self.window.height - BOTTOM_MARGIN - STATUS_BAR_HEIGHT) * BOARD_MAX_HEIGHT_PCT
        self._tile_size = max(20, int(min(max_board_w / board.cols, max_board_h / board.rows)))

    def _origin(self) -> Tuple[float, float]:
        board = get_board(self.world)
        board_left = (self.window.width - self._tile_size * board.cols) / 2
        return board_left, BOTTOM_MARGIN

    def tile_at_point(self, x: float, y: float) -> Optional[Tuple[int, int]]:
        board = get_board(self.world)
        left, bottom = self._origin()
        col = int((x - left) // self._tile_size)
        row_from_bottom = int((y - bottom) // self._tile_size)
        row = board.rows - 1 - row_from_bottom
        if x < left or y < bottom or not board.in_bounds(row, col):
            return None
        return row, col

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def process(self):
        # Local import keeps tests headless without creating a window.
        import arcade
        if (self.window.width, self.window.height) != self._last_window_size:
            self._last_window_size = (self.window.width, self.window.height)
            self._recalculate_tile_size()
        registry = get_tile_registry(self.world)
        board = get_board(self.world)
        tile = self._tile_size
        left, bottom = self._origin()
        for row, cells in enumerate(self.frame()):
            for col, cell in enumerate(cells):
                x0 = left + col * tile
                y0 = bottom + (board.rows - 1 - row) * tile
                if board.is_blocked(row, col):
                    arcade.draw_lrbt_rectangle_filled(x0, x0 + tile, y0, y0 + tile, (25, 25, 25))
                    continue
                arcade.draw_lrbt_rectangle_outline(x0, x0 + tile, y0, y0 + tile, (60, 60, 70), 1)
                if cell is None:
                    continue
                kind, special = cell
                glyph, background = registry.style_for(kind)
                arcade.draw_lrbt_rectangle_filled(
                    x0 + PADDING, x0 + tile - PADDING, y0 + PADDING, y0 + tile - PADDING, background
                )
                label = glyph if special is None else f"{glyph}{SPECIAL_MARKERS[special]}"
                arcade.draw_text(label, x0 + tile / 2, y0 + tile / 2, arcade.color.BLACK, tile * 0.3,
                                 anchor_x="center", anchor_y="center")
                if (row, col) == self.selected:
                    arcade.draw_lrbt_rectangle_outline(x0 + 1, x0 + tile - 1, y0 + 1, y0 + tile - 1,
                                                       arcade.color.WHITE, 3)
        self._draw_status(arcade, board.rows * tile + bottom)
        self._draw_message(arcade)

    def _draw_status(self, arcade, board_top: float) -> None:
        level = get_level_state(self.world)
        if level is None:
            return
        text = f"Level {level.level_index}    Time left {level.time_left}"
        arcade.draw_text(text, self.window.width / 2, board_top + STATUS_BAR_HEIGHT / 2,
                         arcade.color.WHITE, 18, anchor_x="center", anchor_y="center")

    def _draw_message(self, arcade) -> None:
        state = get_game_state(self.world)
        lines = []
        if self.banner:
            lines.append(self.banner)
        elif state is not None and state.mode is not GameMode.PLAYING and not self.animating:
            lines.append(state.message or "")
            if state.next_action:
                lines.append(f"Press Enter to {state.next_action.replace('_', ' ')}")
        if not lines:
            return
        cx = self.window.width / 2
        cy = self.window.height / 2
        arcade.draw_lrbt_rectangle_filled(cx - 220, cx + 220, cy - 50, cy + 50, (20, 20, 30))
        arcade.draw_lrbt_rectangle_outline(cx - 220, cx + 220, cy - 50, cy + 50, (150, 150, 180), 2)
        for index, line in enumerate(lines):
            arcade.draw_text(line, cx, cy + 14 - index * 28, arcade.color.WHITE, 16,
                             anchor_x="center", anchor_y="center")
