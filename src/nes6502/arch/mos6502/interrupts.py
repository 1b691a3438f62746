# src/nes6502/arch/mos6502/interrupts.py
"""
MOS 6502 割り込みコントローラ。

RESET / NMI / IRQ / BRK のスタック操作とベクタ読み出しを担当します。
割り込み線の状態遷移は命令の境界でのみ評価されます（命令の途中では評価しない）。
"""
from enum import Enum
from typing import Optional
import logging

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State, StatusFlags, NMI_VECTOR, RESET_VECTOR, IRQ_VECTOR

logger = logging.getLogger(__name__)

INTERRUPT_CYCLES = 7
RESET_CYCLES = 7


class InterruptKind(Enum):
    NMI = "NMI"
    IRQ = "IRQ"
    RESET = "RESET"
    BRK = "BRK"


VECTORS = {
    InterruptKind.NMI: NMI_VECTOR,
    InterruptKind.IRQ: IRQ_VECTOR,
    InterruptKind.BRK: IRQ_VECTOR,
    InterruptKind.RESET: RESET_VECTOR,
}


# @intent:responsibility NMI要求をラッチする（エッジトリガ）。
def raise_nmi(state: Mos6502State) -> None:
    state.nmi_pending = True


# @intent:responsibility IRQ線をアサートする（レベルトリガ、解除されるまで保持）。
def raise_irq(state: Mos6502State) -> None:
    state.irq_line = True


def clear_irq(state: Mos6502State) -> None:
    state.irq_line = False


# @intent:responsibility PCとステータスを積み、Iフラグを立ててベクタへ分岐する共通シーケンス。
# @intent:note brk=True の場合のみスタック上のBビットが1になる。予約ビットは常に1。
def enter_interrupt(state: Mos6502State, bus: Bus, kind: InterruptKind, return_address: int) -> None:
    state.push_word(bus, return_address & 0xFFFF)
    state.push(bus, state.p.to_byte(brk=kind is InterruptKind.BRK))
    state.p.irq_disable = True
    state.pc = bus.read_word(VECTORS[kind])


# @intent:responsibility 保留中の割り込みを受け付ける。NMIが優先され、IRQはIフラグが0のときのみ。
# @intent:return 受け付けた割り込みの種類、なければNone。
def service_pending(state: Mos6502State, bus: Bus) -> Optional[InterruptKind]:
    if state.nmi_pending:
        state.nmi_pending = False
        kind = InterruptKind.NMI
    elif state.irq_line and not state.p.irq_disable:
        kind = InterruptKind.IRQ
    else:
        return None
    enter_interrupt(state, bus, kind, state.pc)
    state.cycles += INTERRUPT_CYCLES
    return kind


# @intent:responsibility RESETシーケンス。スタックへの書き込みは行わず、SPのみ3減算する。
def reset(state: Mos6502State, bus: Bus) -> int:
    state.sp = (state.sp - 3) & 0xFF
    state.p.irq_disable = True
    state.nmi_pending = False
    state.irq_line = False
    state.pc = bus.read_word(RESET_VECTOR)
    state.cycles += RESET_CYCLES
    logger.info("CPU reset, PC=$%04X", state.pc)
    return RESET_CYCLES


# @intent:responsibility RTI: ステータス、PCの順に取り出す。Bビットは実レジスタには存在しないため捨てられる。
def return_from_interrupt(state: Mos6502State, bus: Bus) -> None:
    state.p = StatusFlags.from_byte(state.pull(bus))
    state.pc = state.pull_word(bus)
