# src/nes6502/arch/mos6502/instructions/control.py
"""
MOS 6502 制御系命令 (Branch, Jump, Stack, Flags, NOP, BRK/RTI)。

ディスパッチャは実行前にPCを命令長分進めるため、ここで見える state.pc は
常に「次の命令の先頭アドレス」です。分岐しない命令はPCに触れません。
"""
from typing import Optional

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State, StatusFlags
from nes6502.arch.mos6502.instructions.base import Operand, OperandKind
from nes6502.arch.mos6502 import interrupts


# --- Branch Instructions ---

# @intent:responsibility 条件成立時にPCを分岐先へ書き換え、追加サイクル数を返す。
# @intent:note 成立で+1、さらに分岐先が次命令と別ページなら+1。
def _branch(state: Mos6502State, operand: Operand, condition: bool) -> int:
    if not condition:
        return 0
    state.pc = operand.address
    return 2 if operand.page_crossed else 1


def bcc(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, not state.p.carry)


def bcs(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, state.p.carry)


def beq(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, state.p.zero)


def bne(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, not state.p.zero)


def bmi(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, state.p.negative)


def bpl(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, not state.p.negative)


def bvc(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, not state.p.overflow)


def bvs(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    return _branch(state, operand, state.p.overflow)


# --- Jump Instructions ---

def jmp(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.pc = operand.address


# @intent:note スタックに積むのは「JSR命令の最後のバイトのアドレス」= 次の命令 - 1。
def jsr(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.push_word(bus, (state.pc - 1) & 0xFFFF)
    state.pc = operand.address


def rts(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.pc = (state.pull_word(bus) + 1) & 0xFFFF


# --- Stack Operations (PHA, PHP, PLA, PLP) ---

def pha(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.push(bus, state.a)


# PHP pushes status with Break(B) and Reserved(R) set to 1.
def php(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.push(bus, state.p.to_byte(brk=True))


def pla(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = state.pull(bus)
    state.p.set_nz(state.a)


def plp(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p = StatusFlags.from_byte(state.pull(bus))


# --- Flag Operations (CLC, SEC, etc) ---

def clc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.carry = False


def sec(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.carry = True


def cli(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.irq_disable = False


def sei(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.irq_disable = True


def clv(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.overflow = False


def cld(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.decimal = False


def sed(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.decimal = True


# --- System / Other ---

# @intent:note メモリオペランドを持つ非公式NOPは読み出しだけを行う（I/Oの副作用のため）。
def nop(state: Mos6502State, bus: Bus, operand: Operand) -> Optional[int]:
    if operand.kind is OperandKind.ADDRESS:
        bus.read(operand.address)
    return None


# @intent:note BRKは1バイト命令だが、戻りアドレスはパディングバイトを飛ばした PC + 2。
def brk(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    interrupts.enter_interrupt(state, bus, interrupts.InterruptKind.BRK, state.pc + 1)


def rti(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    interrupts.return_from_interrupt(state, bus)
