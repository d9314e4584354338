"""Command-line front end: keyboard mapping, instruction/timer pacing and the window loop."""

from __future__ import annotations

import argparse
import sys
import time
from array import array
from collections.abc import Iterable
from typing import Optional, Sequence

from xchip8.cpu import VIDEO_HEIGHT, VIDEO_WIDTH, Chip8
from xchip8.state import SLOT_COUNT

TIMER_PERIOD_US = 16330
MIN_VIDEO_SCALE = 1
MIN_CYCLE_DELAY = 5
DEFAULT_ROM = "roms/breakout.ch8"

# Host keyboard layout for the hexadecimal keypad:
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  Q W E R
#   7 8 9 E      A S D F
#   A 0 B F      Z X C V
KEY_LAYOUT: dict[str, int] = {
    "x": 0x0,
    "1": 0x1,
    "2": 0x2,
    "3": 0x3,
    "q": 0x4,
    "w": 0x5,
    "e": 0x6,
    "a": 0x7,
    "s": 0x8,
    "d": 0x9,
    "z": 0xA,
    "c": 0xB,
    "4": 0xC,
    "r": 0xD,
    "f": 0xE,
    "v": 0xF,
}

# Elapsed time beyond this is dropped so a stalled frame cannot trigger a burst of work.
_MAX_BACKLOG_US = 100_000

_BEEP_RATE = 22050
_BEEP_HZ = 500
_BEEP_MS = 64


def apply_keys(chip8: Chip8, pressed: Iterable[str]) -> None:
    """Set the keypad from the names of the host keys currently held down."""
    held = {name.lower() for name in pressed}
    for name, key in KEY_LAYOUT.items():
        chip8.keypad[key] = name in held


def clamp_settings(chip8: Chip8, state_index: int) -> int:
    """Clamp the video scale and clock delay in place and return a valid save-state slot."""
    chip8.video_scale = max(chip8.video_scale, MIN_VIDEO_SCALE)
    chip8.cycle_delay = max(chip8.cycle_delay, MIN_CYCLE_DELAY)
    return max(0, min(state_index, SLOT_COUNT - 1))


class Scheduler:
    """Paces instruction cycles and the 60 Hz-ish timers against elapsed wall time."""

    def __init__(self, chip8: Chip8) -> None:
        self.chip8 = chip8
        self._cycle_elapsed = 0.0
        self._timer_elapsed = 0.0

    def _active(self) -> bool:
        return self.chip8.is_loaded and self.chip8.is_running

    def advance(self, elapsed_us: float) -> int:
        """Account for ``elapsed_us`` microseconds and return how many instructions ran."""
        if elapsed_us < 0:
            raise ValueError("elapsed time cannot be negative")
        chip8 = self.chip8
        if not self._active():
            self._cycle_elapsed = 0.0
            self._timer_elapsed = 0.0
            return 0

        self._cycle_elapsed = min(self._cycle_elapsed + elapsed_us, _MAX_BACKLOG_US)
        self._timer_elapsed = min(self._timer_elapsed + elapsed_us, _MAX_BACKLOG_US)

        executed = 0
        while self._active():
            delay = max(chip8.cycle_delay, 1)
            if self._cycle_elapsed <= delay:
                break
            self._cycle_elapsed -= delay
            chip8.run_cycle()
            executed += 1

        while self._active() and self._timer_elapsed > TIMER_PERIOD_US:
            self._timer_elapsed -= TIMER_PERIOD_US
            chip8.run_timers()

        if chip8.sound_timer == 1:
            chip8.should_beep = True
        elif chip8.sound_timer == 0:
            chip8.should_beep = False
        return executed


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="xchip8", description="Run a CHIP-8 program.")
    parser.add_argument("rom", nargs="?", default=DEFAULT_ROM, help="path of the ROM to run")
    parser.add_argument("--scale", type=int, default=10, help="pixels per CHIP-8 pixel")
    parser.add_argument("--delay", type=int, default=2000, help="microseconds between instructions")
    parser.add_argument("--seed", type=int, default=None, help="seed for the random instruction")
    return parser.parse_args(argv)


def _square_wave() -> bytes:
    samples = _BEEP_RATE * _BEEP_MS // 1000
    period = _BEEP_RATE / _BEEP_HZ
    amplitude = 8000
    wave = array("h", (amplitude if (i % period) < period / 2 else -amplitude for i in range(samples)))
    return wave.tobytes()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Open a window and run the ROM named on the command line."""
    args = _parse_args(argv)
    chip8 = Chip8(seed=args.seed)
    chip8.video_scale = args.scale
    chip8.cycle_delay = args.delay
    slot = clamp_settings(chip8, 0)

    try:
        chip8.load_rom(args.rom)
    except (OSError, ValueError) as exc:
        print(f"xchip8: cannot load {args.rom}: {exc}", file=sys.stderr)
        return 1

    import pygame

    pygame.init()
    try:
        beep = None
        try:
            pygame.mixer.init(frequency=_BEEP_RATE, size=-16, channels=1)
            beep = pygame.mixer.Sound(buffer=_square_wave())
        except pygame.error:
            beep = None

        def open_window():
            return pygame.display.set_mode(
                (VIDEO_WIDTH * chip8.video_scale, VIDEO_HEIGHT * chip8.video_scale)
            )

        screen = open_window()
        frame = pygame.Surface((VIDEO_WIDTH, VIDEO_HEIGHT))
        host_keys = {name: getattr(pygame, f"K_{name}") for name in KEY_LAYOUT}
        scheduler = Scheduler(chip8)
        clock = pygame.time.Clock()
        redraw = True
        last = time.perf_counter()
        running = True

        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    key = event.key
                    if key == pygame.K_ESCAPE:
                        running = False
                    elif key == pygame.K_p:
                        chip8.is_running = not chip8.is_running
                    elif key == pygame.K_n:
                        chip8.is_running = True
                        chip8.run_cycle()
                        chip8.is_running = False
                    elif key == pygame.K_F12:
                        chip8.load_rom(args.rom)
                        redraw = True
                    elif key == pygame.K_F5:
                        chip8.is_running = False
                        chip8.savestates.create_state(chip8, slot)
                        chip8.is_running = True
                    elif key == pygame.K_F9:
                        chip8.is_running = False
                        chip8.savestates.load_state(chip8, slot)
                        redraw = True
                    elif key == pygame.K_PAGEUP:
                        slot = clamp_settings(chip8, slot + 1)
                    elif key == pygame.K_PAGEDOWN:
                        slot = clamp_settings(chip8, slot - 1)
                    elif key in (pygame.K_EQUALS, pygame.K_KP_PLUS):
                        chip8.video_scale += 1
                        clamp_settings(chip8, slot)
                        screen = open_window()
                        redraw = True
                    elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                        chip8.video_scale -= 1
                        clamp_settings(chip8, slot)
                        screen = open_window()
                        redraw = True
                    elif key == pygame.K_PERIOD:
                        chip8.cycle_delay += 25
                    elif key == pygame.K_COMMA:
                        chip8.cycle_delay -= 25
                        clamp_settings(chip8, slot)
                    elif key == pygame.K_TAB:
                        chip8.foreground, chip8.background = chip8.background, chip8.foreground
                        redraw = True

            held = pygame.key.get_pressed()
            apply_keys(chip8, (name for name, code in host_keys.items() if held[code]))

            now = time.perf_counter()
            try:
                scheduler.advance((now - last) * 1_000_000)
            except IndexError as exc:
                print(f"xchip8: {exc} at {chip8.pc:#06x}; paused", file=sys.stderr)
                chip8.is_running = False
            last = now

            if beep is not None and chip8.should_beep and beep.get_num_channels() == 0:
                beep.play()

            if redraw or chip8.update_draw_image:
                for position, pixel in enumerate(chip8.render_display()):
                    row, col = divmod(position, VIDEO_WIDTH)
                    frame.set_at(
                        (col, row), (pixel & 0xFF, (pixel >> 8) & 0xFF, (pixel >> 16) & 0xFF)
                    )
                redraw = False

            pygame.transform.scale(frame, screen.get_size(), screen)
            pygame.display.flip()
            status = "running" if chip8.is_running else "paused"
            pygame.display.set_caption(
                f"XCHIP8 - {clock.get_fps():.1f} FPS - slot {slot} - "
                f"delay {chip8.cycle_delay}us - {status}"
            )
            clock.tick(60)
    finally:
        pygame.quit()
    return 0