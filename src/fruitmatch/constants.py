GRID_ROWS = 9
GRID_COLS = 9
TILE_SIZE = 64
BOTTOM_MARGIN = 20

# Spawnable fruit kinds with the glyph and background colour the window draws for them.
FRUIT_KINDS = {
    'apple':      ('A', (196, 48, 43)),
    'banana':     ('B', (232, 201, 60)),
    'grape':      ('G', (123, 62, 133)),
    'orange':     ('O', (230, 126, 34)),
    'strawberry': ('S', (226, 62, 120)),
    'watermelon': ('W', (63, 160, 79)),
}
# Display-only kind carried by colour specials; never matched by kind equality.
COLOR_PLACEHOLDER_KIND = 'rainbow'
COLOR_PLACEHOLDER_STYLE = ('*', (240, 240, 240))

# Retry ceilings. Exhausting either is reported as an engine failure.
MAX_GENERATION_ATTEMPTS = 500
MAX_SHUFFLE_ATTEMPTS = 50
# Upper bound on remove/gravity/refill passes within one resolution.
MAX_CASCADE_PASSES = 500

# Presentation pauses (seconds) attached to board snapshots. Headless callers may ignore them.
SWAP_PAUSE = 0.1
CLEAR_PAUSE = 0.3
SETTLE_PAUSE = 0.3
REFILL_PAUSE = 0.1
SHUFFLE_PAUSE = 1.5

# Board maximum footprint relative to window (percentage of window width/height).
BOARD_MAX_WIDTH_PCT = 0.75
BOARD_MAX_HEIGHT_PCT = 0.85
# Height of the status bar drawn above the board (level and time left).
STATUS_BAR_HEIGHT = 48
