# xchip8

A CHIP-8 interpreter for Python. It runs CHIP-8 programs in a pygame
window, paces instructions and the 60 Hz timers against wall-clock time,
keeps ten in-memory save-state slots, and draws the 64×32 screen in a
two-colour palette.

## Installation

```
pip install .
```

## Running a program

```
xchip8 path/to/program.ch8
```

With no ROM argument, `xchip8` tries `roms/breakout.ch8` relative to the
current directory. No ROMs come with the package.

Options:

- `--scale N`: window pixels per CHIP-8 pixel (default 10, at least 1)
- `--delay US`: microseconds between instructions (default 2000, about
  500 instructions per second; at least 5)
- `--seed N`: seed for the random-number instruction

If the ROM cannot be read or is too large for memory, the command prints a
message and exits with status 1.

### Keypad

The hexadecimal keypad is mapped onto the left-hand side of the keyboard:

```
1 2 3 C      1 2 3 4
4 5 6 D  ->  Q W E R
7 8 9 E      A S D F
A 0 B F      Z X C V
```

### Other keys

| Key                | Action                                        |
|--------------------|-----------------------------------------------|
| Escape             | quit                                          |
| P                  | pause / resume                                |
| N                  | run one instruction, then pause               |
| F12                | reload the ROM from the start                 |
| F5                 | save to the current slot                      |
| F9                 | load from the current slot (leaves it paused) |
| Page Up / Down     | choose save slot 0–9                          |
| `=` / `-`          | increase / decrease the video scale           |
| `.` / `,`          | increase / decrease the clock delay by 25 µs  |
| Tab                | swap foreground and background colours        |

The window title shows the frame rate, the save slot, the clock delay and
whether the machine is running. When the sound timer reaches 1, a short
500 Hz tone plays if an audio device is available. If a program
overflows or underflows the call stack, the interpreter prints the address
and pauses.

## Using the interpreter from code

```python
from xchip8.cpu import Chip8
from xchip8.state import SaveStates

chip8 = Chip8(seed=1)
chip8.load_program(bytes([0x60, 0x2A, 0x12, 0x02]))  # V0 = 0x2A, then loop
chip8.run_cycle()
chip8.run_cycle()
assert chip8.registers[0] == 0x2A
chip8.run_timers()

saves = SaveStates()
saves.create_state(chip8, 0)
chip8.reset()
saves.load_state(chip8, 0)
```

- `xchip8.cpu.Chip8` holds memory (`ram`), registers (`registers`,
  `index`, `pc`, `sp`, `stack`), timers, the `keypad` and the monochrome
  frame buffer `video`. `reset()` returns it to its boot state with the
  font at `0x50`. `load_program(data)` and `load_rom(path)` reset it and
  copy a program to `0x200`. They raise `ValueError` if the program does
  not fit. `run_cycle()` executes one instruction. `run_timers()` counts the
  delay and sound timers down by one.
- `Chip8.render_display(foreground, background)` converts `video` into
  packed colour pixels, with red in the low byte, using `colored_pixel`.
  Colours are `(r, g, b, a)` tuples of floats from 0 to 1. When they are
  left out, the machine's `foreground` and `background` are used.
- `xchip8.state.SaveStates` has ten `State` slots. `create_state` and
  `load_state` raise `IndexError` for a slot outside 0–9. A `State` can
  also be used on its own through `capture(chip8)` and `restore(chip8)`.
- `xchip8.app.Scheduler(chip8).advance(elapsed_us)` runs as many
  instructions and timer ticks as the elapsed time allows and returns the
  number of instructions run. Timers tick every 16 330 µs.
- `xchip8.app.apply_keys(chip8, pressed)` sets the keypad from the names of
  the held host keys.
- `xchip8.app.clamp_settings(chip8, slot)` keeps the video scale and clock
  delay within their limits and returns a valid slot number.

## What it does not do

- Save states are kept only in memory and are lost when the program exits.
  They are not written to disk.
- There is no on-screen menu, register or stack debugger, or memory viewer.
  The palette can be swapped with Tab. It can be changed only from code.

## Tests

```
pip install .[test]
pytest
```