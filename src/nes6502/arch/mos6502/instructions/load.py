# src/nes6502/arch/mos6502/instructions/load.py
"""
MOS 6502 転送系命令 (Load/Store/Transfer)。
"""
from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.instructions.base import Operand, read_operand


# --- Loads ---
# @intent:responsibility オペランドをレジスタへロードし、N, Zフラグを更新。

def lda(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = read_operand(state, bus, operand)
    state.p.set_nz(state.a)


def ldx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.x = read_operand(state, bus, operand)
    state.p.set_nz(state.x)


def ldy(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.y = read_operand(state, bus, operand)
    state.p.set_nz(state.y)


# --- Stores ---
# @intent:responsibility レジスタの内容をメモリへストア。フラグ変化なし。

def sta(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    bus.write(operand.address, state.a)


def stx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    bus.write(operand.address, state.x)


def sty(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    bus.write(operand.address, state.y)


# --- Register Transfers (TAX, TAY, TXA, TYA, TSX, TXS) ---

def tax(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.x = state.a
    state.p.set_nz(state.x)


def tay(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.y = state.a
    state.p.set_nz(state.y)


def txa(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = state.x
    state.p.set_nz(state.a)


def tya(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = state.y
    state.p.set_nz(state.a)


# @intent:note TSXはSPの8bit値をXへ転送し、N, Zを更新する。
def tsx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.x = state.sp
    state.p.set_nz(state.x)


# @intent:note TXSはN, Zフラグを更新 *しない*。
def txs(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.sp = state.x
