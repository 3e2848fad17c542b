import sys, os
ROOT = os.path.dirname(__file__)
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)
import random
from fruitmatch.events import bus as bus_module
from fruitmatch.events.bus import EventBus, EVENT_BOARD_SNAPSHOT, EVENT_TICK, EVENT_TIMER_CHANGED
from fruitmatch.session import GameSession
from fruitmatch.systems.board_ops import find_valid_swaps

QUIET = {EVENT_BOARD_SNAPSHOT, EVENT_TICK, EVENT_TIMER_CHANGED}


def trace(name):
    def _print(sender, **payload):
        print(f"[{name}]", {k: v for k, v in payload.items() if k not in ('moves', 'kinds', 'groups')})
    return _print


seed = int(sys.argv[1]) if len(sys.argv) > 1 else 7
moves = int(sys.argv[2]) if len(sys.argv) > 2 else 5
bus = EventBus()
for attr in dir(bus_module):
    if attr.startswith('EVENT_'):
        name = getattr(bus_module, attr)
        if name not in QUIET:
            bus.subscribe(name, trace(name))

session = GameSession(rng=random.Random(seed), event_bus=bus)
session.start_level(1)
for _ in range(moves):
    swaps = find_valid_swaps(session.board)
    if not swaps:
        print('no valid swaps')
        break
    (r1, c1), (r2, c2) = swaps[0]
    result = session.propose_swap(r1, c1, r2, c2)
    print('outcome', result.outcome, 'snapshots', [s.label for s in result.snapshots])
print('time left', session.level_state.time_left, 'mode', session.game_state.mode)
