import pytest

from xchip8.cpu import (
    DEFAULT_CYCLE_DELAY,
    FONTSET,
    FONTSET_START_ADDRESS,
    MEMORY_SIZE,
    PIXEL_ON,
    STACK_LEVELS,
    START_ADDRESS,
    VIDEO_WIDTH,
    Chip8,
    colored_pixel,
)


def execute(chip, *opcodes):
    for op in opcodes:
        chip.ram[chip.pc] = op >> 8
        chip.ram[chip.pc + 1] = op & 0xFF
        chip.run_cycle()


@pytest.fixture
def chip():
    return Chip8(seed=1234)


def test_boot_state(chip):
    assert chip.pc == START_ADDRESS == 0x200
    assert chip.ram[FONTSET_START_ADDRESS:FONTSET_START_ADDRESS + len(FONTSET)] == FONTSET
    assert chip.ram[FONTSET_START_ADDRESS:FONTSET_START_ADDRESS + 5] == bytes([0xF0, 0x90, 0x90, 0x90, 0xF0])
    assert chip.is_running is True
    assert chip.is_loaded is False
    assert chip.cycle_delay == DEFAULT_CYCLE_DELAY == 2000
    assert chip.video_scale == 10


def test_load_program_copies_and_resets(chip):
    chip.registers[3] = 9
    program = bytes([0x12, 0x34, 0x56])
    chip.load_program(program)
    assert chip.ram[START_ADDRESS:START_ADDRESS + 3] == program
    assert chip.registers[3] == 0
    assert chip.is_loaded is True


def test_load_program_too_large(chip):
    with pytest.raises(ValueError):
        chip.load_program(bytes(MEMORY_SIZE - START_ADDRESS + 1))


def test_load_rom_reads_file(chip, tmp_path):
    rom = tmp_path / "game.ch8"
    rom.write_bytes(bytes([0xA2, 0x2A, 0x60, 0x0C]))
    chip.load_rom(rom)
    assert chip.ram[START_ADDRESS:START_ADDRESS + 4] == rom.read_bytes()
    assert chip.is_loaded


def test_load_rom_missing_file(chip, tmp_path):
    with pytest.raises(FileNotFoundError):
        chip.load_rom(tmp_path / "missing.ch8")


def test_clear_screen(chip):
    chip.video[5] = PIXEL_ON
    execute(chip, 0x00E0)
    assert chip.video[5] == 0
    assert chip.video == [0] * len(chip.video)
    assert chip.pc == START_ADDRESS + 2


def test_return_with_empty_stack_raises(chip):
    with pytest.raises(IndexError):
        execute(chip, 0x00EE)
    assert chip.sp == 0


def test_call_and_return(chip):
    execute(chip, 0x2400)
    assert chip.pc == 0x400
    assert chip.sp == 1
    assert chip.stack[0] == START_ADDRESS + 2
    execute(chip, 0x00EE)
    assert chip.pc == START_ADDRESS + 2
    assert chip.sp == 0


def test_stack_overflow_raises(chip):
    for _ in range(STACK_LEVELS):
        execute(chip, 0x2300)
    assert chip.sp == STACK_LEVELS
    with pytest.raises(IndexError):
        execute(chip, 0x2300)


def test_jump(chip):
    execute(chip, 0x1345)
    assert chip.pc == 0x345


@pytest.mark.parametrize(
    "setup, opcode, skips",
    [
        ({0: 0x11}, 0x3011, True),
        ({0: 0x12}, 0x3011, False),
        ({0: 0x12}, 0x4011, True),
        ({0: 0x11}, 0x4011, False),
        ({0: 5, 1: 5}, 0x5010, True),
        ({0: 5, 1: 6}, 0x5010, False),
        ({0: 5, 1: 6}, 0x9010, True),
        ({0: 5, 1: 5}, 0x9010, False),
    ],
)
def test_conditional_skips(chip, setup, opcode, skips):
    for reg, value in setup.items():
        chip.registers[reg] = value
    start = chip.pc
    execute(chip, opcode)
    assert chip.pc == start + (4 if skips else 2)


def test_load_immediate(chip):
    execute(chip, 0x6A42)
    assert chip.registers[0xA] == 0x42


def test_add_immediate_wraps_without_flag(chip):
    chip.registers[0xF] = 0
    execute(chip, 0x61FF, 0x7102)
    assert chip.registers[1] == 1
    assert chip.registers[0xF] == 0


def test_register_logic(chip):
    a, b = 0b1100_1010, 0b1010_0110
    chip.registers[1], chip.registers[2] = a, b
    execute(chip, 0x8121)
    assert chip.registers[1] == a | b
    chip.registers[1] = a
    execute(chip, 0x8122)
    assert chip.registers[1] == a & b
    chip.registers[1] = a
    execute(chip, 0x8123)
    assert chip.registers[1] == a ^ b
    execute(chip, 0x8320)
    assert chip.registers[3] == b


def test_add_registers_carry(chip):
    chip.registers[1], chip.registers[2] = 0xFF, 0x01
    execute(chip, 0x8124)
    assert chip.registers[1] == 0
    assert chip.registers[0xF] == 1


def test_add_registers_no_carry(chip):
    chip.registers[1], chip.registers[2] = 0x10, 0x20
    execute(chip, 0x8124)
    assert chip.registers[1] == 0x10 + 0x20
    assert chip.registers[0xF] == 0


def test_subtract_flag_is_strict(chip):
    chip.registers[1], chip.registers[2] = 7, 7
    execute(chip, 0x8125)
    assert chip.registers[1] == 0
    assert chip.registers[0xF] == 0


def test_subtract_without_borrow(chip):
    chip.registers[1], chip.registers[2] = 9, 4
    execute(chip, 0x8125)
    assert chip.registers[1] == 9 - 4
    assert chip.registers[0xF] == 1


def test_reverse_subtract(chip):
    chip.registers[1], chip.registers[2] = 4, 9
    execute(chip, 0x8127)
    assert chip.registers[1] == 9 - 4
    assert chip.registers[0xF] == 1


def test_shifts(chip):
    chip.registers[1] = 0x81
    execute(chip, 0x8106)
    assert chip.registers[1] == 0x81 >> 1
    assert chip.registers[0xF] == 1
    chip.registers[2] = 0x81
    execute(chip, 0x820E)
    assert chip.registers[2] == (0x81 << 1) & 0xFF
    assert chip.registers[0xF] == 1


def test_set_index_and_jump_offset(chip):
    execute(chip, 0xA123)
    assert chip.index == 0x123
    chip.registers[0] = 0x10
    execute(chip, 0xB300)
    assert chip.pc == 0x300 + 0x10


def test_random_is_masked_and_seeded():
    first, second = Chip8(seed=7), Chip8(seed=7)
    execute(first, 0xC30F)
    execute(second, 0xC30F)
    assert first.registers[3] == second.registers[3]
    assert first.registers[3] <= 0x0F
    execute(first, 0xC400)
    assert first.registers[4] == 0


def test_draw_font_digit(chip):
    chip.index = FONTSET_START_ADDRESS
    execute(chip, 0xD015)
    assert chip.video[0:4] == [PIXEL_ON] * 4
    assert chip.video[4] == 0
    assert chip.registers[0xF] == 0
    assert chip.update_draw_image is True


def test_draw_twice_collides_and_erases(chip):
    chip.index = FONTSET_START_ADDRESS
    execute(chip, 0xD015, 0xD015)
    assert chip.registers[0xF] == 1
    assert chip.video == [0] * len(chip.video)


def test_draw_wraps_start_coordinates(chip):
    chip.index = FONTSET_START_ADDRESS
    chip.registers[0] = VIDEO_WIDTH
    chip.registers[1] = 0
    execute(chip, 0xD011)
    assert chip.video[0:4] == [PIXEL_ON] * 4


def test_key_skips(chip):
    chip.registers[2] = 0xB
    start = chip.pc
    execute(chip, 0xE29E)
    assert chip.pc == start + 2
    chip.keypad[0xB] = True
    start = chip.pc
    execute(chip, 0xE29E)
    assert chip.pc == start + 4
    start = chip.pc
    execute(chip, 0xE2A1)
    assert chip.pc == start + 2


def test_wait_for_key(chip):
    start = chip.pc
    execute(chip, 0xF30A)
    assert chip.pc == start
    chip.keypad[5] = True
    chip.keypad[9] = True
    chip.run_cycle()
    assert chip.registers[3] == 5
    assert chip.pc == start + 2


def test_timers(chip):
    chip.registers[1] = 3
    execute(chip, 0xF115, 0xF118)
    assert chip.delay_timer == 3
    assert chip.sound_timer == 3
    for _ in range(5):
        chip.run_timers()
    assert chip.delay_timer == 0
    assert chip.sound_timer == 0
    chip.delay_timer = 2
    chip.run_timers()
    execute(chip, 0xF207)
    assert chip.registers[2] == chip.delay_timer


def test_add_to_index_overflow_flag(chip):
    chip.index = 0xFFF
    chip.registers[1] = 1
    execute(chip, 0xF11E)
    assert chip.index == 0xFFF + 1
    assert chip.registers[0xF] == 1
    chip.index = 0x100
    execute(chip, 0xF11E)
    assert chip.registers[0xF] == 0


@pytest.mark.parametrize("digit", range(16))
def test_font_address(chip, digit):
    chip.registers[4] = digit
    execute(chip, 0xF429)
    assert chip.ram[chip.index:chip.index + 5] == FONTSET[5 * digit:5 * digit + 5]


def test_binary_coded_decimal(chip):
    chip.registers[6] = 234
    chip.index = 0x300
    execute(chip, 0xF633)
    assert list(chip.ram[0x300:0x303]) == [2, 3, 4]


def test_store_and_load_registers_round_trip(chip):
    values = [10, 20, 30, 40]
    chip.registers[0:4] = bytes(values)
    chip.index = 0x400
    execute(chip, 0xF355)
    assert list(chip.ram[0x400:0x404]) == values
    chip.registers[0:4] = bytes(4)
    execute(chip, 0xF365)
    assert list(chip.registers[0:4]) == values
    assert chip.index == 0x400


def test_unknown_opcode_is_ignored(chip):
    before = bytearray(chip.registers)
    start = chip.pc
    execute(chip, 0xE000, 0xF0FF, 0x812F)
    assert chip.pc == start + 6
    assert chip.registers == before


def test_colored_pixel_on():
    assert colored_pixel(PIXEL_ON, (1.0, 0.0, 0.0, 1.0), (0.0, 0.0, 0.0, 0.0)) == 0xFF0000FF


def test_colored_pixel_off():
    assert colored_pixel(0, (1.0, 1.0, 1.0, 1.0), (0.0, 0.0, 1.0, 0.0)) == 0x00FF0000


def test_render_display(chip):
    chip.index = FONTSET_START_ADDRESS
    execute(chip, 0xD011)
    fg, bg = (1.0, 1.0, 1.0, 1.0), (0.0, 0.0, 0.0, 1.0)
    display = chip.render_display(fg, bg)
    assert display[0] == colored_pixel(PIXEL_ON, fg, bg)
    assert display[4] == colored_pixel(0, fg, bg)
    assert chip.display is display
    assert chip.update_draw_image is False


def test_render_display_uses_own_palette(chip):
    display = chip.render_display()
    assert set(display) == {colored_pixel(0, chip.foreground, chip.background)}