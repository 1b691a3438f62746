"""
命令表とディスパッチャ (step) のテスト。
サイクル数、ページ交差・分岐のペナルティ、不正オペコード、CPU派生オプションを検証します。
"""
import logging

import pytest

from nes6502.core.snapshot import StepOutcome
from nes6502.transport.bus import Bus, RAM, BusAccessType
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.dispatch import step, CpuOptions, NES_2A03_OPTIONS
from nes6502.arch.mos6502.instructions.base import AddressingMode
from nes6502.arch.mos6502.instructions.maps import (
    OPCODE_MAP, JAM_OPCODES, Penalty, opcode_table, decode_opcode,
)


@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus


def run(bus, program, origin=0x0200, options=CpuOptions(), **registers):
    bus.load_block(origin, program)
    state = Mos6502State(pc=origin, **registers)
    result = step(state, bus, options)
    return state, result


class TestInstructionTable:
    def test_every_byte_is_an_instruction_or_jam(self):
        for opcode in range(256):
            assert (opcode in OPCODE_MAP) != (opcode in JAM_OPCODES), f"${opcode:02X}"

    def test_documented_and_undocumented_counts(self):
        documented = [op for op, d in OPCODE_MAP.items() if d.documented]
        assert len(documented) == 151
        assert len(OPCODE_MAP) - len(documented) == 93
        assert len(JAM_OPCODES) == 12

    def test_indexed_stores_carry_write_penalty(self):
        for opcode in (0x9D, 0x99, 0x91, 0x1E, 0xFE, 0xDE):
            assert OPCODE_MAP[opcode].penalty is Penalty.INDEXED_WRITE

    def test_reads_in_indexed_modes_carry_page_cross_penalty(self):
        indexed = (AddressingMode.ABSOLUTE_X, AddressingMode.ABSOLUTE_Y, AddressingMode.INDIRECT_INDEXED)
        for opcode, descriptor in OPCODE_MAP.items():
            if descriptor.documented and descriptor.mode in indexed and descriptor.mnemonic in ("LDA", "ADC", "CMP", "LDX", "LDY", "EOR"):
                assert descriptor.penalty is Penalty.PAGE_CROSS, f"${opcode:02X}"

    def test_table_without_undocumented_opcodes(self):
        table = opcode_table(decimal_mode=True, undocumented_opcodes=False)
        assert len(table) == 151
        assert decode_opcode(0xA7, table) is None
        assert decode_opcode(0xA9, table).mnemonic == "LDA"

    def test_binary_table_replaces_decimal_capable_functions(self):
        table = opcode_table(decimal_mode=False, undocumented_opcodes=True)
        assert table[0x69].execute is not OPCODE_MAP[0x69].execute
        assert table[0xA9].execute is OPCODE_MAP[0xA9].execute

    def test_tables_are_cached_and_read_only(self):
        table = opcode_table(True, True)
        assert opcode_table(True, True) is table
        with pytest.raises(TypeError):
            table[0x02] = OPCODE_MAP[0xEA]


class TestStep:
    def test_adc_immediate(self, bus):
        state, result = run(bus, [0x69, 0x10], a=0x50)
        assert state.a == 0x60
        assert (state.flag_c, state.flag_z, state.flag_v, state.flag_n) == (False, False, False, False)
        assert state.pc == 0x0202
        assert result.cycles == 2
        assert result.outcome is StepOutcome.EXECUTED
        assert state.cycles == 2

    def test_adc_wraps_to_zero_with_carry(self, bus):
        state, result = run(bus, [0x69, 0x01], a=0xFF)
        assert state.a == 0x00
        assert state.flag_c and state.flag_z
        assert not state.flag_n and not state.flag_v

    def test_jam_opcode_is_reported_without_side_effects(self, bus, caplog):
        bus.load_block(0x0200, [0x02])
        state = Mos6502State(pc=0x0200, a=0x11, x=0x22, y=0x33, sp=0xF0)
        before = state.copy()

        with caplog.at_level(logging.WARNING, logger="nes6502.arch.mos6502.dispatch"):
            result = step(state, bus)

        assert result.outcome is StepOutcome.ILLEGAL_OPCODE
        assert result.cycles == 0
        assert result.opcode == 0x02
        assert state == before
        assert "Illegal opcode $02" in caplog.text

    def test_every_jam_opcode_is_illegal(self, bus):
        for opcode in JAM_OPCODES:
            state, result = run(bus, [opcode])
            assert result.outcome is StepOutcome.ILLEGAL_OPCODE
            assert state.pc == 0x0200

    def test_undocumented_disabled_is_illegal(self, bus):
        options = CpuOptions(undocumented_opcodes=False)
        state, result = run(bus, [0xA7, 0x10], options=options)
        assert result.outcome is StepOutcome.ILLEGAL_OPCODE
        assert state.pc == 0x0200

    def test_store_is_visible_through_ram_mirrors(self):
        bus = Bus()
        bus.register_device(0x0000, 0x1FFF, RAM(0x0800), mirror=0x0800)
        bus.register_device(0x8000, 0xFFFF, RAM(0x8000))
        bus.load_block(0x8000, [0x85, 0x00])
        state = Mos6502State(pc=0x8000, a=0x5A)

        result = step(state, bus)

        assert result.cycles == 3
        for alias in (0x0000, 0x0800, 0x1000, 0x1800):
            assert bus.read(alias) == 0x5A

    def test_indirect_jmp_page_bug(self, bus):
        bus.load_block(0x30FF, [0x80])
        bus.load_block(0x3000, [0x50])
        bus.load_block(0x3100, [0x40])
        state, result = run(bus, [0x6C, 0xFF, 0x30])
        assert state.pc == 0x5080
        assert result.cycles == 5

    def test_jsr_rts_round_trip(self, bus):
        bus.load_block(0x0300, [0x60])
        state, result = run(bus, [0x20, 0x00, 0x03], sp=0xFF)
        assert state.pc == 0x0300
        assert result.cycles == 6
        assert bus.read(0x01FF) == 0x02
        assert bus.read(0x01FE) == 0x02  # 戻り先 - 1 = $0202

        result = step(state, bus)
        assert state.pc == 0x0203
        assert state.sp == 0xFF
        assert state.cycles == 12


class TestCycles:
    def test_page_cross_adds_one_cycle_for_reads(self, bus):
        state, result = run(bus, [0xBD, 0x80, 0x12], x=0x10)
        assert result.cycles == 4
        state, result = run(bus, [0xBD, 0xF0, 0x12], x=0x20)
        assert result.cycles == 5

    def test_indirect_indexed_page_cross(self, bus):
        bus.load_block(0x0010, [0xF0, 0x20])
        _, result = run(bus, [0xB1, 0x10], y=0x05)
        assert result.cycles == 5
        _, result = run(bus, [0xB1, 0x10], y=0x10)
        assert result.cycles == 6

    def test_indexed_store_is_always_penalized_by_default(self, bus):
        _, result = run(bus, [0x9D, 0x80, 0x12], x=0x10)
        assert result.cycles == 5
        _, result = run(bus, [0x9D, 0xF0, 0x12], x=0x20)
        assert result.cycles == 5

    def test_indexed_store_penalty_only_on_cross_when_configured(self, bus):
        options = CpuOptions(indexed_write_always_penalized=False)
        _, result = run(bus, [0x9D, 0x80, 0x12], options=options, x=0x10)
        assert result.cycles == 4
        _, result = run(bus, [0x9D, 0xF0, 0x12], options=options, x=0x20)
        assert result.cycles == 5
        _, result = run(bus, [0xFE, 0x80, 0x12], options=options, x=0x10)
        assert result.cycles == 6

    @pytest.mark.parametrize("origin, program, zero, expected_pc, cycles", [
        (0x0200, [0xF0, 0x10], False, 0x0202, 2),   # 不成立
        (0x0200, [0xF0, 0x10], True, 0x0212, 3),    # 成立、同一ページ
        (0x02F0, [0xF0, 0x10], True, 0x0302, 4),    # 成立、ページ交差
        (0x0200, [0xF0, 0xFB], True, 0x01FD, 4),    # 後方へのページ交差
    ])
    def test_branch_cycles(self, bus, origin, program, zero, expected_pc, cycles):
        bus.load_block(origin, program)
        state = Mos6502State(pc=origin)
        state.p.zero = zero
        result = step(state, bus)
        assert state.pc == expected_pc
        assert result.cycles == cycles

    def test_read_modify_write_writes_twice(self, bus):
        bus.load_block(0x0010, [0x7F])
        bus.load_block(0x0200, [0xE6, 0x10])
        state = Mos6502State(pc=0x0200)
        bus.get_and_clear_activity_log()

        result = step(state, bus)

        writes = [(a.address, a.data) for a in bus.get_and_clear_activity_log()
                  if a.access_type is BusAccessType.WRITE]
        assert writes == [(0x0010, 0x7F), (0x0010, 0x80)]
        assert result.cycles == 5
        assert state.flag_n

    # @intent:test_case_driver_loop 外部ドライバがstepを繰り返し呼んでも、バスのログは直近1ステップ分しか残らない。
    def test_activity_log_holds_only_the_last_step(self, bus):
        bus.load_block(0x0200, [0x4C, 0x00, 0x02])  # JMP $0200
        state = Mos6502State(pc=0x0200)

        for _ in range(10000):
            step(state, bus)

        log = bus.get_and_clear_activity_log()
        assert [a.address for a in log] == [0x0200, 0x0201, 0x0202]
        assert state.cycles == 30000


class TestVariants:
    def test_decimal_mode_on_nmos(self, bus):
        bus.load_block(0x0200, [0xF8, 0x18, 0xA9, 0x09, 0x69, 0x01])
        state = Mos6502State(pc=0x0200)
        for _ in range(4):
            step(state, bus)
        assert state.flag_d
        assert state.a == 0x10

    def test_decimal_flag_is_ignored_on_2a03(self, bus):
        bus.load_block(0x0200, [0xF8, 0x18, 0xA9, 0x09, 0x69, 0x01])
        state = Mos6502State(pc=0x0200)
        for _ in range(4):
            step(state, bus, NES_2A03_OPTIONS)
        assert state.flag_d
        assert state.a == 0x0A

    def test_sbc_on_2a03_is_binary(self, bus):
        state = Mos6502State(pc=0x0200, a=0x10)
        state.p.decimal = True
        state.p.carry = True
        bus.load_block(0x0200, [0xE9, 0x01])
        step(state, bus, NES_2A03_OPTIONS)
        assert state.a == 0x0F
