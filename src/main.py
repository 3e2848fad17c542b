"""Entry point for the Fruit Match puzzle.

Sets up the game session (world, event bus, engine systems) and an Arcade window.
"""
from arcade import Window, run, set_background_color, color, key
from fruitmatch.events.bus import EVENT_TICK, EVENT_MOUSE_PRESS, EVENT_TILE_CLICK, EVENT_CHOICE_SELECTED
from fruitmatch.session import GameSession
from fruitmatch.systems.render import RenderSystem
from fruitmatch.systems.cascade_state_utils import get_or_create_cascade_state


class FruitMatchWindow(Window):
    def __init__(self):
        super().__init__(800, 720, "Fruit Match")
        self.set_update_rate(1/60)
        self.session = GameSession()
        self.event_bus = self.session.event_bus
        self.render_system = RenderSystem(self.session.world, self.event_bus, self)
        set_background_color(color.BLACK)
        self.session.start_level(1)

    def on_resize(self, width: int, height: int):
        self.render_system.notify_resize(width, height)
        return super().on_resize(width, height)

    def on_draw(self):
        self.clear()
        self.render_system.process()

    def on_update(self, delta_time: float):
        self.render_system.update(delta_time)
        # The level clock only runs while nothing is being replayed on screen.
        if not self.render_system.animating:
            self.event_bus.emit(EVENT_TICK, dt=delta_time)

    def on_mouse_press(self, x: float, y: float, button: int, modifiers: int):
        self.event_bus.emit(EVENT_MOUSE_PRESS, x=x, y=y, button=button)
        if self.render_system.animating or get_or_create_cascade_state(self.session.world).busy:
            return
        hit = self.render_system.tile_at_point(x, y)
        if hit is not None:
            self.event_bus.emit(EVENT_TILE_CLICK, row=hit[0], col=hit[1])

    def on_key_press(self, symbol: int, modifiers: int):
        state = self.session.game_state
        if symbol != key.ENTER or state is None or not state.next_action:
            return
        if self.render_system.animating:
            return
        self.event_bus.emit(EVENT_CHOICE_SELECTED, action=state.next_action)


def main():
    FruitMatchWindow()
    run()


if __name__ == "__main__":
    main()
