import pytest

from nes6502.transport.bus import Bus, RAM
from nes6502.arch.mos6502 import disassembler
from nes6502.arch.mos6502.instructions.maps import opcode_table


@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus


def test_addressing_mode_notation(bus):
    bus.load_block(0x8000, [
        0x0A,              # ASL A
        0xB5, 0x10,        # LDA $10,X
        0xBE, 0x00, 0x30,  # LDX $3000,Y
        0x6C, 0xFC, 0xFF,  # JMP ($FFFC)
        0xA1, 0x20,        # LDA ($20,X)
        0x91, 0x22,        # STA ($22),Y
        0xD0, 0xFC,        # BNE $800B
    ])
    lines = [text for _, _, text in disassembler.disassemble(bus, 0x8000, 15)]
    assert lines == [
        "ASL A",
        "LDA $10,X",
        "LDX $3000,Y",
        "JMP ($FFFC)",
        "LDA ($20,X)",
        "STA ($22),Y",
        "BNE $800B",
    ]


def test_jam_and_unknown_bytes(bus):
    bus.load_block(0x0000, [0x02, 0xA7, 0x10])
    assert disassembler.disassemble(bus, 0x0000, 3) == [
        (0x0000, "02", "JAM"),
        (0x0001, "A7 10", "LAX $10"),
    ]

    documented_only = opcode_table(decimal_mode=True, undocumented_opcodes=False)
    assert disassembler.disassemble(bus, 0x0001, 1, documented_only) == [(0x0001, "A7", "DB $A7")]


def test_disassembly_does_not_touch_the_bus_log(bus):
    bus.load_block(0x0000, [0xEA, 0xEA])
    disassembler.disassemble(bus, 0x0000, 2)
    assert bus.get_and_clear_activity_log() == []
