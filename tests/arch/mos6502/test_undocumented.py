# tests/arch/mos6502/test_undocumented.py
"""
NMOS 6502 非公式命令のテスト。
"""
import pytest

from nes6502.transport.bus import Bus, RAM
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.dispatch import step
from nes6502.arch.mos6502.instructions.undocumented import MAGIC_CONSTANT


@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus


def execute(bus, program, carry=False, **registers):
    bus.load_block(0x0200, program)
    state = Mos6502State(pc=0x0200, **registers)
    state.p.carry = carry
    result = step(state, bus)
    return state, result


class TestLoadStoreCombinations:
    def test_lax(self, bus):
        bus.load_block(0x0010, [0x8F])
        state, result = execute(bus, [0xA7, 0x10])
        assert state.a == state.x == 0x8F
        assert state.flag_n
        assert result.cycles == 3

    def test_lax_indirect_indexed_page_cross(self, bus):
        bus.load_block(0x0010, [0xFF, 0x20])
        bus.load_block(0x2100, [0x01])
        state, result = execute(bus, [0xB3, 0x10], y=0x01)
        assert state.a == state.x == 0x01
        assert result.cycles == 6

    def test_sax_does_not_touch_flags(self, bus):
        state, result = execute(bus, [0x87, 0x10], a=0xF0, x=0x3C)
        assert bus.read(0x0010) == 0x30
        assert not state.flag_z and not state.flag_n
        assert result.cycles == 3

    def test_las(self, bus):
        bus.load_block(0x1234, [0xF0])
        state, result = execute(bus, [0xBB, 0x34, 0x12], sp=0x3F, y=0x00)
        assert state.a == state.x == state.sp == 0x30
        assert result.cycles == 4


class TestReadModifyWriteCombinations:
    def test_dcp(self, bus):
        bus.load_block(0x0010, [0x41])
        state, result = execute(bus, [0xC7, 0x10], a=0x40)
        assert bus.read(0x0010) == 0x40
        assert state.flag_z and state.flag_c
        assert state.a == 0x40
        assert result.cycles == 5

    def test_isc(self, bus):
        bus.load_block(0x0010, [0x00])
        state, _ = execute(bus, [0xE7, 0x10], carry=True, a=0x10)
        assert bus.read(0x0010) == 0x01
        assert state.a == 0x0F
        assert state.flag_c

    def test_slo(self, bus):
        bus.load_block(0x0010, [0x81])
        state, _ = execute(bus, [0x07, 0x10], a=0x00)
        assert bus.read(0x0010) == 0x02
        assert state.a == 0x02
        assert state.flag_c

    def test_rla(self, bus):
        bus.load_block(0x0010, [0x80])
        state, _ = execute(bus, [0x27, 0x10], carry=True, a=0xFF)
        assert bus.read(0x0010) == 0x01
        assert state.a == 0x01
        assert state.flag_c

    def test_sre(self, bus):
        bus.load_block(0x0010, [0x03])
        state, _ = execute(bus, [0x47, 0x10], a=0xFF)
        assert bus.read(0x0010) == 0x01
        assert state.a == 0xFE
        assert state.flag_c and state.flag_n

    def test_rra_feeds_rotated_carry_into_adc(self, bus):
        bus.load_block(0x0010, [0x02])
        state, _ = execute(bus, [0x67, 0x10], carry=True, a=0x10)
        assert bus.read(0x0010) == 0x81
        assert state.a == 0x91
        assert not state.flag_c

    def test_indirect_indexed_rmw_has_fixed_cycles(self, bus):
        bus.load_block(0x0010, [0x80, 0x30])
        _, result = execute(bus, [0xD3, 0x10], y=0x01)
        assert result.cycles == 8
        _, result = execute(bus, [0xD3, 0x10], y=0xFF)
        assert result.cycles == 8


class TestImmediateCombinations:
    def test_anc_copies_negative_to_carry(self, bus):
        state, _ = execute(bus, [0x0B, 0x80], a=0xFF)
        assert state.a == 0x80
        assert state.flag_n and state.flag_c

    def test_alr(self, bus):
        state, _ = execute(bus, [0x4B, 0x03], a=0xFF)
        assert state.a == 0x01
        assert state.flag_c

    @pytest.mark.parametrize("a, imm, carry, result, c, v", [
        (0xFF, 0xFF, True, 0xFF, True, False),
        (0xFF, 0x40, False, 0x20, False, True),
        (0xFF, 0x80, False, 0x40, True, True),
    ])
    def test_arr(self, bus, a, imm, carry, result, c, v):
        state, _ = execute(bus, [0x6B, imm], carry=carry, a=a)
        assert state.a == result
        assert (state.flag_c, state.flag_v) == (c, v)

    def test_sbx(self, bus):
        state, _ = execute(bus, [0xCB, 0x10], a=0xF0, x=0x3C)
        assert state.x == 0x20
        assert state.flag_c
        assert state.a == 0xF0

    def test_ane_and_lxa_use_magic_constant(self, bus):
        state, _ = execute(bus, [0x8B, 0xFF], a=0x00, x=0xFF)
        assert state.a == MAGIC_CONSTANT
        state, _ = execute(bus, [0xAB, 0x0F], a=0x00)
        assert state.a == state.x == MAGIC_CONSTANT & 0x0F

    def test_sbc_duplicate(self, bus):
        state, result = execute(bus, [0xEB, 0x01], carry=True, a=0x10)
        assert state.a == 0x0F
        assert result.cycles == 2


class TestHighByteStores:
    def test_shx_without_page_cross(self, bus):
        state, result = execute(bus, [0x9E, 0x00, 0x12], x=0xFF, y=0x10)
        assert bus.read(0x1210) == 0x13
        assert result.cycles == 5

    def test_shx_page_cross_replaces_high_byte(self, bus):
        execute(bus, [0x9E, 0xF0, 0x12], x=0x05, y=0x20)
        assert bus.read(0x0110) == 0x01
        assert bus.read(0x1310) == 0x00

    def test_shy(self, bus):
        execute(bus, [0x9C, 0x00, 0x12], x=0x01, y=0xFF)
        assert bus.read(0x1201) == 0x13

    def test_sha(self, bus):
        execute(bus, [0x9F, 0x00, 0x12], a=0xF3, x=0x3F, y=0x01)
        assert bus.read(0x1201) == 0x33 & 0x13

    def test_tas_sets_stack_pointer(self, bus):
        state, _ = execute(bus, [0x9B, 0x00, 0x12], a=0xFF, x=0x0F, y=0x00)
        assert state.sp == 0x0F
        assert bus.read(0x1200) == 0x0F & 0x13


class TestUndocumentedNops:
    def test_zero_page_nop_reads_and_skips(self, bus):
        state, result = execute(bus, [0x04, 0x10], a=0x12)
        assert state.pc == 0x0202
        assert state.a == 0x12
        assert result.cycles == 3

    def test_absolute_x_nop_page_cross(self, bus):
        state, result = execute(bus, [0x1C, 0xF0, 0x12], x=0x20)
        assert state.pc == 0x0203
        assert result.cycles == 5

    def test_immediate_nop(self, bus):
        state, result = execute(bus, [0x80, 0xFF])
        assert state.pc == 0x0202
        assert result.cycles == 2
