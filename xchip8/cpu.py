"""CHIP-8 interpreter core: memory, registers, timers and instruction set."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Callable, Optional, Union

from xchip8.state import SaveStates

KEY_COUNT = 16
MEMORY_SIZE = 4096
REGISTER_COUNT = 16
STACK_LEVELS = 16
VIDEO_WIDTH = 64
VIDEO_HEIGHT = 32
VIDEO_SIZE = VIDEO_WIDTH * VIDEO_HEIGHT

FONTSET_START_ADDRESS = 0x50
START_ADDRESS = 0x200
PIXEL_ON = 0xFFFFFFFF

DEFAULT_CYCLE_DELAY = 2000
DEFAULT_VIDEO_SCALE = 10

Color = tuple[float, float, float, float]

DEFAULT_FOREGROUND: Color = (0.05, 1.0, 0.05, 1.0)
DEFAULT_BACKGROUND: Color = (0.03, 0.03, 0.03, 1.0)

FONTSET = bytes((
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
))


def _channel(value: float) -> int:
    return max(0, min(255, int(value * 255)))


def colored_pixel(video: int, foreground: Color, background: Color) -> int:
    """Map a monochrome RGBA pixel to the palette, packed with red in the low byte."""
    result = 0
    for shift_in, shift_out, fg, bg in zip((24, 16, 8, 0), (0, 8, 16, 24), foreground, background):
        byte = (video >> shift_in) & 0xFF
        result |= _channel(fg if byte == 0xFF else bg) << shift_out
    return result


def _addr(address: int) -> int:
    return address & (MEMORY_SIZE - 1)


class Chip8:
    """A CHIP-8 virtual machine."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)
        self.cycle_delay = DEFAULT_CYCLE_DELAY
        self.video_scale = DEFAULT_VIDEO_SCALE
        self.foreground: Color = DEFAULT_FOREGROUND
        self.background: Color = DEFAULT_BACKGROUND
        self.is_loaded = False
        self.update_draw_image = False
        self.should_beep = False
        self.savestates = SaveStates()

        self._table: dict[int, Callable[[], None]] = {
            0x0: self._table0,
            0x1: self._op_1nnn,
            0x2: self._op_2nnn,
            0x3: self._op_3xnn,
            0x4: self._op_4xnn,
            0x5: self._op_5xy0,
            0x6: self._op_6xnn,
            0x7: self._op_7xnn,
            0x8: self._table8,
            0x9: self._op_9xy0,
            0xA: self._op_annn,
            0xB: self._op_bnnn,
            0xC: self._op_cxnn,
            0xD: self._op_dxyn,
            0xE: self._table_e,
            0xF: self._table_f,
        }
        self._table_0_ops = {0x0: self._op_00e0, 0xE: self._op_00ee}
        self._table_8_ops = {
            0x0: self._op_8xy0,
            0x1: self._op_8xy1,
            0x2: self._op_8xy2,
            0x3: self._op_8xy3,
            0x4: self._op_8xy4,
            0x5: self._op_8xy5,
            0x6: self._op_8xy6,
            0x7: self._op_8xy7,
            0xE: self._op_8xye,
        }
        self._table_e_ops = {0x1: self._op_exa1, 0xE: self._op_ex9e}
        self._table_f_ops = {
            0x07: self._op_fx07,
            0x0A: self._op_fx0a,
            0x15: self._op_fx15,
            0x18: self._op_fx18,
            0x1E: self._op_fx1e,
            0x29: self._op_fx29,
            0x33: self._op_fx33,
            0x55: self._op_fx55,
            0x65: self._op_fx65,
        }
        self.reset()

    def reset(self) -> None:
        """Return the machine to its boot state with the font loaded."""
        self.is_running = True
        self.video: list[int] = [0] * VIDEO_SIZE
        self.display: list[int] = [0] * VIDEO_SIZE
        self.ram = bytearray(MEMORY_SIZE)
        self.registers = bytearray(REGISTER_COUNT)
        self.stack: list[int] = [0] * STACK_LEVELS
        self.keypad: list[bool] = [False] * KEY_COUNT
        self.pc = START_ADDRESS
        self.opcode = 0
        self.index = 0
        self.sp = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.ram[FONTSET_START_ADDRESS:FONTSET_START_ADDRESS + len(FONTSET)] = FONTSET

    def load_program(self, data: bytes) -> None:
        """Reset the machine and copy a program into memory at the start address."""
        if len(data) > MEMORY_SIZE - START_ADDRESS:
            raise ValueError(
                f"program of {len(data)} bytes does not fit in "
                f"{MEMORY_SIZE - START_ADDRESS} bytes of memory"
            )
        self.reset()
        self.ram[START_ADDRESS:START_ADDRESS + len(data)] = data
        self.is_loaded = True

    def load_rom(self, path: Union[str, Path]) -> None:
        """Load a program from a ROM file."""
        self.load_program(Path(path).read_bytes())

    def run_cycle(self) -> None:
        """Fetch, decode and execute one instruction."""
        self.opcode = (self.ram[_addr(self.pc)] << 8) | self.ram[_addr(self.pc + 1)]
        self.pc = (self.pc + 2) & 0xFFFF
        self._table[self.opcode >> 12]()

    def run_timers(self) -> None:
        """Count the delay and sound timers down by one tick."""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def render_display(
        self, foreground: Optional[Color] = None, background: Optional[Color] = None
    ) -> list[int]:
        """Convert the monochrome screen into palette colours and return it."""
        fg = self.foreground if foreground is None else foreground
        bg = self.background if background is None else background
        self.display = [colored_pixel(pixel, fg, bg) for pixel in self.video]
        self.update_draw_image = False
        return self.display

    # Operand fields

    @property
    def _x(self) -> int:
        return (self.opcode & 0x0F00) >> 8

    @property
    def _y(self) -> int:
        return (self.opcode & 0x00F0) >> 4

    @property
    def _nn(self) -> int:
        return self.opcode & 0x00FF

    @property
    def _nnn(self) -> int:
        return self.opcode & 0x0FFF

    def _skip_if(self, condition: bool) -> None:
        if condition:
            self.pc = (self.pc + 2) & 0xFFFF

    # Secondary dispatch

    def _nop(self) -> None:
        pass

    def _table0(self) -> None:
        self._table_0_ops.get(self.opcode & 0x000F, self._nop)()

    def _table8(self) -> None:
        self._table_8_ops.get(self.opcode & 0x000F, self._nop)()

    def _table_e(self) -> None:
        self._table_e_ops.get(self.opcode & 0x000F, self._nop)()

    def _table_f(self) -> None:
        self._table_f_ops.get(self.opcode & 0x00FF, self._nop)()

    # Instructions

    def _op_00e0(self) -> None:
        self.video = [0] * VIDEO_SIZE

    def _op_00ee(self) -> None:
        if self.sp == 0:
            raise IndexError("stack underflow on return")
        self.sp -= 1
        self.pc = self.stack[self.sp]

    def _op_1nnn(self) -> None:
        self.pc = self._nnn

    def _op_2nnn(self) -> None:
        if self.sp >= STACK_LEVELS:
            raise IndexError("stack overflow on call")
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = self._nnn

    def _op_3xnn(self) -> None:
        self._skip_if(self.registers[self._x] == self._nn)

    def _op_4xnn(self) -> None:
        self._skip_if(self.registers[self._x] != self._nn)

    def _op_5xy0(self) -> None:
        self._skip_if(self.registers[self._x] == self.registers[self._y])

    def _op_6xnn(self) -> None:
        self.registers[self._x] = self._nn

    def _op_7xnn(self) -> None:
        x = self._x
        self.registers[x] = (self.registers[x] + self._nn) & 0xFF

    def _op_8xy0(self) -> None:
        self.registers[self._x] = self.registers[self._y]

    def _op_8xy1(self) -> None:
        self.registers[self._x] |= self.registers[self._y]

    def _op_8xy2(self) -> None:
        self.registers[self._x] &= self.registers[self._y]

    def _op_8xy3(self) -> None:
        self.registers[self._x] ^= self.registers[self._y]

    def _op_8xy4(self) -> None:
        x, y = self._x, self._y
        total = self.registers[x] + self.registers[y]
        self.registers[0xF] = 1 if total > 0xFF else 0
        self.registers[x] = total & 0xFF

    def _op_8xy5(self) -> None:
        x, y = self._x, self._y
        self.registers[0xF] = 1 if self.registers[x] > self.registers[y] else 0
        self.registers[x] = (self.registers[x] - self.registers[y]) & 0xFF

    def _op_8xy6(self) -> None:
        x = self._x
        self.registers[0xF] = self.registers[x] & 0x1
        self.registers[x] >>= 1

    def _op_8xy7(self) -> None:
        x, y = self._x, self._y
        self.registers[0xF] = 1 if self.registers[y] > self.registers[x] else 0
        self.registers[x] = (self.registers[y] - self.registers[x]) & 0xFF

    def _op_8xye(self) -> None:
        x = self._x
        self.registers[0xF] = (self.registers[x] & 0x80) >> 7
        self.registers[x] = (self.registers[x] << 1) & 0xFF

    def _op_9xy0(self) -> None:
        self._skip_if(self.registers[self._x] != self.registers[self._y])

    def _op_annn(self) -> None:
        self.index = self._nnn

    def _op_bnnn(self) -> None:
        self.pc = (self.registers[0] + self._nnn) & 0xFFFF

    def _op_cxnn(self) -> None:
        self.registers[self._x] = self._rng.randint(0, 255) & self._nn

    def _op_dxyn(self) -> None:
        x_pos = self.registers[self._x] % VIDEO_WIDTH
        y_pos = self.registers[self._y] % VIDEO_HEIGHT
        height = self.opcode & 0x000F
        self.registers[0xF] = 0

        for row in range(height):
            sprite_byte = self.ram[_addr(self.index + row)]
            for col in range(8):
                if not sprite_byte & (0x80 >> col):
                    continue
                position = (y_pos + row) * VIDEO_WIDTH + x_pos + col
                if position >= VIDEO_SIZE:
                    continue
                if self.video[position] == PIXEL_ON:
                    self.registers[0xF] = 1
                self.video[position] ^= PIXEL_ON
        self.update_draw_image = True

    def _key_down(self, key: int) -> bool:
        return key < KEY_COUNT and bool(self.keypad[key])

    def _op_ex9e(self) -> None:
        self._skip_if(self._key_down(self.registers[self._x]))

    def _op_exa1(self) -> None:
        self._skip_if(not self._key_down(self.registers[self._x]))

    def _op_fx07(self) -> None:
        self.registers[self._x] = self.delay_timer

    def _op_fx0a(self) -> None:
        pressed = next((key for key, down in enumerate(self.keypad) if down), None)
        if pressed is None:
            self.pc = (self.pc - 2) & 0xFFFF
        else:
            self.registers[self._x] = pressed

    def _op_fx15(self) -> None:
        self.delay_timer = self.registers[self._x]

    def _op_fx18(self) -> None:
        self.sound_timer = self.registers[self._x]

    def _op_fx1e(self) -> None:
        x = self._x
        self.registers[0xF] = 1 if self.index + self.registers[x] > 0xFFF else 0
        self.index = (self.index + self.registers[x]) & 0xFFFF

    def _op_fx29(self) -> None:
        self.index = FONTSET_START_ADDRESS + 5 * self.registers[self._x]

    def _op_fx33(self) -> None:
        value = self.registers[self._x]
        self.ram[_addr(self.index)] = value // 100 % 10
        self.ram[_addr(self.index + 1)] = value // 10 % 10
        self.ram[_addr(self.index + 2)] = value % 10

    def _op_fx55(self) -> None:
        for offset in range(self._x + 1):
            self.ram[_addr(self.index + offset)] = self.registers[offset]

    def _op_fx65(self) -> None:
        for offset in range(self._x + 1):
            self.registers[offset] = self.ram[_addr(self.index + offset)]