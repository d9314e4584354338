"""Save-state snapshots of the interpreter's machine state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from xchip8.cpu import Chip8

_VIDEO_SIZE = 64 * 32
_MEMORY_SIZE = 4096
_REGISTER_COUNT = 16
_STACK_LEVELS = 16
_KEY_COUNT = 16

SLOT_COUNT = 10


@dataclass
class State:
    """A full copy of the machine's memory, registers, timers and screen."""

    video: list[int] = field(default_factory=lambda: [0] * _VIDEO_SIZE)
    display: list[int] = field(default_factory=lambda: [0] * _VIDEO_SIZE)
    keypad: list[bool] = field(default_factory=lambda: [False] * _KEY_COUNT)
    ram: bytearray = field(default_factory=lambda: bytearray(_MEMORY_SIZE))
    registers: bytearray = field(default_factory=lambda: bytearray(_REGISTER_COUNT))
    stack: list[int] = field(default_factory=lambda: [0] * _STACK_LEVELS)
    opcode: int = 0
    index: int = 0
    pc: int = 0
    sp: int = 0
    delay_timer: int = 0
    sound_timer: int = 0

    def capture(self, chip8: Chip8) -> None:
        """Copy the interpreter's current state into this snapshot."""
        self.video = list(chip8.video)
        self.display = list(chip8.display)
        self.keypad = list(chip8.keypad)
        self.ram = bytearray(chip8.ram)
        self.registers = bytearray(chip8.registers)
        self.stack = list(chip8.stack)
        self.opcode = chip8.opcode
        self.index = chip8.index
        self.pc = chip8.pc
        self.sp = chip8.sp
        self.delay_timer = chip8.delay_timer
        self.sound_timer = chip8.sound_timer

    def restore(self, chip8: Chip8) -> None:
        """Copy this snapshot back into the interpreter."""
        chip8.video = list(self.video)
        chip8.display = list(self.display)
        chip8.keypad = list(self.keypad)
        chip8.ram = bytearray(self.ram)
        chip8.registers = bytearray(self.registers)
        chip8.stack = list(self.stack)
        chip8.opcode = self.opcode
        chip8.index = self.index
        chip8.pc = self.pc
        chip8.sp = self.sp
        chip8.delay_timer = self.delay_timer
        chip8.sound_timer = self.sound_timer


class SaveStates:
    """A fixed set of numbered save-state slots."""

    def __init__(self) -> None:
        self.states: list[State] = [State() for _ in range(SLOT_COUNT)]

    def _slot(self, index: int) -> State:
        if not 0 <= index < len(self.states):
            raise IndexError(f"save-state slot {index} out of range 0..{len(self.states) - 1}")
        return self.states[index]

    def create_state(self, chip8: Chip8, index: int) -> State:
        """Save the interpreter's state into slot ``index``."""
        state = self._slot(index)
        state.capture(chip8)
        return state

    def load_state(self, chip8: Chip8, index: int) -> State:
        """Restore the interpreter's state from slot ``index``."""
        state = self._slot(index)
        state.restore(chip8)
        return state