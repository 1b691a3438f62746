# src/nes6502/arch/mos6502/dispatch.py
"""
MOS 6502 命令ディスパッチャ。

step() は命令境界で保留中の割り込みを処理し、なければ1命令をフェッチ・デコード・実行して
消費サイクル数を返します。CPUの実行時の異常（不正オペコード）は例外ではなく StepOutcome で返します。
"""
from dataclasses import dataclass
from typing import NamedTuple, Optional
import logging

from nes6502.core.snapshot import StepOutcome
from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.interrupts import InterruptKind, service_pending, reset, raise_nmi, raise_irq, clear_irq, INTERRUPT_CYCLES
from nes6502.arch.mos6502.instructions.base import Operand
from nes6502.arch.mos6502.instructions.maps import (
    InstructionDescriptor, Penalty, JAM_OPCODES, opcode_table, decode_opcode, resolve_operand,
)

logger = logging.getLogger(__name__)

__all__ = [
    "CpuOptions", "DEFAULT_OPTIONS", "NES_2A03_OPTIONS", "StepResult", "step",
    "reset", "raise_nmi", "raise_irq", "clear_irq",
]


# @intent:responsibility CPUの派生品ごとの差異を表すオプション。
@dataclass(frozen=True)
class CpuOptions:
    decimal_mode: bool = True  # False: 10進回路を持たない派生品 (NES 2A03)
    undocumented_opcodes: bool = True  # False: 非公式命令も不正オペコードとして扱う
    # True: インデックス付きストア/RMWは交差の有無によらず固定サイクル (実機準拠)
    # False: 読み出し系と同じく、交差した場合のみ+1
    indexed_write_always_penalized: bool = True


DEFAULT_OPTIONS = CpuOptions()
NES_2A03_OPTIONS = CpuOptions(decimal_mode=False)


# @intent:data_structure 1ステップの実行結果。
class StepResult(NamedTuple):
    cycles: int
    outcome: StepOutcome
    opcode: Optional[int] = None
    descriptor: Optional[InstructionDescriptor] = None
    operand: Optional[Operand] = None
    interrupt: Optional[InterruptKind] = None


# @intent:responsibility 記述子のペナルティ規則に従って、このステップのサイクル数を求める。
def instruction_cycles(descriptor: InstructionDescriptor, operand: Operand, extra: int,
                       options: CpuOptions = DEFAULT_OPTIONS) -> int:
    cycles = descriptor.cycles + extra
    if descriptor.penalty is Penalty.PAGE_CROSS:
        cycles += int(operand.page_crossed)
    elif descriptor.penalty is Penalty.INDEXED_WRITE and not options.indexed_write_always_penalized:
        cycles += int(operand.page_crossed) - 1
    return cycles


# @intent:responsibility 1命令（または1回の割り込み受け付け）を実行する。
# @intent:pre-condition state はこのCPUの唯一の実行中状態で、その場で更新される。
# @intent:post-condition ILLEGAL_OPCODE の場合、state は一切変更されない（PCは不正バイトを指したまま）。
def step(state: Mos6502State, bus: Bus, options: CpuOptions = DEFAULT_OPTIONS) -> StepResult:
    """
    命令を1つ実行し、StepResult を返します。

    1. 保留中の割り込み (NMI優先、IRQはIフラグが0のとき) があれば受け付け、INTERRUPT を返す
    2. PCのオペコードをフェッチし、命令表から記述子を引く
    3. オペランドを解決し、PCを命令長分進めてから実行する
    4. ページ交差・分岐成立の追加サイクルを加算し、state.cycles に累積する
    """
    # 前ステップまでの残存ログを破棄。バスのログには常にこのステップのアクセスだけが残る
    bus.get_and_clear_activity_log()

    kind = service_pending(state, bus)
    if kind is not None:
        return StepResult(INTERRUPT_CYCLES, StepOutcome.INTERRUPT, interrupt=kind)

    table = opcode_table(options.decimal_mode, options.undocumented_opcodes)
    opcode = bus.read(state.pc)
    descriptor = decode_opcode(opcode, table)
    if descriptor is None:
        label = "JAM" if opcode in JAM_OPCODES else "disabled undocumented"
        logger.warning("Illegal opcode $%02X (%s) at $%04X", opcode, label, state.pc)
        return StepResult(0, StepOutcome.ILLEGAL_OPCODE, opcode)

    operand = resolve_operand(descriptor, state.pc, bus, state)
    state.pc = (state.pc + operand.length) & 0xFFFF
    extra = descriptor.execute(state, bus, operand) or 0

    cycles = instruction_cycles(descriptor, operand, extra, options)
    state.cycles += cycles
    return StepResult(cycles, StepOutcome.EXECUTED, opcode, descriptor, operand)
