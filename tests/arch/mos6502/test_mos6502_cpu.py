# tests/arch/mos6502/test_mos6502_cpu.py
import pytest

from nes6502.core.snapshot import StepOutcome
from nes6502.transport.bus import Bus, RAM, BusAccessType
from nes6502.arch.mos6502.cpu import Mos6502Cpu
from nes6502.arch.mos6502.dispatch import NES_2A03_OPTIONS


@pytest.fixture
def cpu():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    bus.load_block(0xFFFC, [0x00, 0x02])
    cpu = Mos6502Cpu(bus)
    cpu.reset()
    return cpu


def test_reset_uses_vector(cpu):
    state = cpu.get_state()
    assert state.pc == 0x0200
    assert state.flag_i
    assert state.cycles == 7


def test_lda_immediate_snapshot(cpu):
    cpu.bus.load_block(0x0200, [0xA9, 0x55])

    snapshot = cpu.step()

    assert snapshot.outcome is StepOutcome.EXECUTED
    assert snapshot.state.a == 0x55
    assert snapshot.state.pc == 0x0202
    assert snapshot.operation.opcode_hex == "A9"
    assert snapshot.operation.mnemonic == "LDA"
    assert snapshot.operation.operands == ["#$55"]
    assert snapshot.operation.operand_bytes == [0x55]
    assert snapshot.operation.length == 2
    assert snapshot.operation.cycle_count == 2
    assert snapshot.metadata.cycle_count == 9
    assert [(a.address, a.access_type) for a in snapshot.bus_activity] == [
        (0x0200, BusAccessType.READ),
        (0x0201, BusAccessType.READ),
    ]


def test_snapshot_state_is_a_copy(cpu):
    cpu.bus.load_block(0x0200, [0xE8, 0xE8])
    first = cpu.step()
    cpu.step()
    assert first.state.x == 1
    assert cpu.get_state().x == 2


def test_stack_pointer_view(cpu):
    # 内部のSPは8bit、外部から見えるSPは物理アドレス ($0100 + SP)
    assert cpu._state.sp == 0xFD
    assert cpu.get_state().sp == 0x01FD
    assert cpu.get_register_map()["S"] == 0x01FD


def test_restore_state_accepts_physical_stack_pointer(cpu):
    state = cpu.get_state()
    state.a = 0x42
    cpu.restore_state(state)
    assert cpu._state.sp == 0xFD
    assert cpu.get_state().a == 0x42


def test_illegal_opcode_snapshot(cpu):
    cpu.bus.load_block(0x0200, [0x02])

    snapshot = cpu.step()

    assert snapshot.outcome is StepOutcome.ILLEGAL_OPCODE
    assert snapshot.operation.mnemonic == "JAM"
    assert snapshot.operation.cycle_count == 0
    assert snapshot.state.pc == 0x0200


def test_interrupt_snapshot(cpu):
    cpu.bus.load_block(0xFFFA, [0x00, 0x90])
    cpu.raise_nmi()

    snapshot = cpu.step()

    assert snapshot.outcome is StepOutcome.INTERRUPT
    assert snapshot.operation.mnemonic == "NMI"
    assert snapshot.operation.cycle_count == 7
    assert snapshot.state.pc == 0x9000


def test_irq_line_control(cpu):
    cpu.bus.load_block(0xFFFE, [0x00, 0xA0])
    cpu.bus.load_block(0x0200, [0x58, 0xEA])  # CLI, NOP
    cpu.raise_irq()
    cpu.clear_irq()
    cpu.step()
    assert cpu.step().outcome is StepOutcome.EXECUTED

    cpu.raise_irq()
    assert cpu.step().outcome is StepOutcome.INTERRUPT
    assert cpu.get_state().pc == 0xA000


def test_symbol_info(cpu):
    cpu.bus.load_block(0x0200, [0x4C, 0x00, 0x02])
    cpu.set_symbol_map({"main": 0x0200})

    snapshot = cpu.step()

    assert snapshot.metadata.symbol_info == "main: JMP $0200"
    assert cpu.get_label(0x0200) == "main"
    assert cpu.get_symbol_map() == {"main": 0x0200}


def test_flag_and_register_maps(cpu):
    flags = cpu.get_flag_state()
    assert flags == {"N": False, "V": False, "D": False, "I": True, "Z": False, "C": False}
    assert cpu.get_register_map()["P"] == 0x24


def test_decimal_option(cpu):
    bus = cpu.bus
    nes_cpu = Mos6502Cpu(bus, NES_2A03_OPTIONS)
    nes_cpu.reset()
    bus.load_block(0x0200, [0xF8, 0xA9, 0x09, 0x69, 0x01])
    for _ in range(3):
        nes_cpu.step()
    assert nes_cpu.get_state().a == 0x0A
    assert nes_cpu.options.decimal_mode is False


def test_disassemble(cpu):
    cpu.bus.load_block(0x0200, [0xA9, 0x01, 0x8D, 0x00, 0x20])
    assert cpu.disassemble(0x0200, 5) == [
        (0x0200, "A9 01", "LDA #$01"),
        (0x0202, "8D 00 20", "STA $2000"),
    ]
