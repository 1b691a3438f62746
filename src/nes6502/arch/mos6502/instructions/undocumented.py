# src/nes6502/arch/mos6502/instructions/undocumented.py
"""
NMOS 6502 非公式命令。

多くは公式命令2つの組み合わせ（例: DCP = DEC + CMP）として振る舞います。
実装はalu/loadの共通処理を再利用し、フラグ規則を重複させません。
SHA/SHX/SHY/TAS はストア値に「ベースアドレス上位バイト + 1」をANDする系統で、
インデックス加算でページを跨いだ場合は書き込み先の上位バイトがその値に置き換わります。
"""
from nes6502.transport.bus import Bus
from nes6502.arch.mos6502 import flags
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.instructions import alu
from nes6502.arch.mos6502.instructions.base import Operand, OperandKind, read_operand

# ANE/LXA の内部バス定数。実機では個体差・温度依存がある。
MAGIC_CONSTANT = 0xEE

_ACCUMULATOR = Operand(OperandKind.ACCUMULATOR, None, None, 1, False, "A", [])


# --- Load / Store combinations ---

# LAX: LDA + LDX
def lax(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = state.x = read_operand(state, bus, operand)
    state.p.set_nz(state.a)


# SAX: A & X をストア。フラグ変化なし。
def sax(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    bus.write(operand.address, state.a & state.x)


# LAS: M & SP を A, X, SP へ
def las(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = read_operand(state, bus, operand) & state.sp
    state.a = state.x = state.sp = value
    state.p.set_nz(value)


# --- Read-Modify-Write combinations ---

# DCP: DEC + CMP
def dcp(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = alu.modify(state, bus, operand, lambda v: v - 1)
    alu.compare_register(state, state.a, value)


# ISC: INC + SBC
def isc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    alu.subtract_from_accumulator(state, alu.modify(state, bus, operand, lambda v: v + 1))


def isc_binary(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = alu.modify(state, bus, operand, lambda v: v + 1)
    alu.subtract_from_accumulator(state, value, decimal_capable=False)


# SLO: ASL + ORA
def slo(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a |= alu.shift_operand(state, bus, operand, flags.shift_left)
    state.p.set_nz(state.a)


# RLA: ROL + AND
def rla(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a &= alu.rotate_left_operand(state, bus, operand)
    state.p.set_nz(state.a)


# SRE: LSR + EOR
def sre(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a ^= alu.shift_operand(state, bus, operand, flags.shift_right)
    state.p.set_nz(state.a)


# RRA: ROR + ADC (ADCはRORのキャリー出力を入力に使う)
def rra(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    alu.add_to_accumulator(state, alu.rotate_right_operand(state, bus, operand))


def rra_binary(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = alu.rotate_right_operand(state, bus, operand)
    alu.add_to_accumulator(state, value, decimal_capable=False)


# --- Immediate combinations ---

# ANC: AND #imm、その後 C = N
def anc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    alu.and_(state, bus, operand)
    state.p.carry = state.p.negative


# ALR: AND #imm + LSR A
def alr(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    alu.and_(state, bus, operand)
    alu.lsr(state, bus, _ACCUMULATOR)


# ARR: AND #imm + ROR A。C はビット6、V はビット6 XOR ビット5 から決まる。
# @intent:note 10進モードでの補正は再現せず、常に2進の挙動とする。
def arr(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = state.a & read_operand(state, bus, operand)
    state.a = (value >> 1) | (int(state.p.carry) << 7)
    state.p.set_nz(state.a)
    state.p.carry = (state.a & 0x40) != 0
    state.p.overflow = (((state.a >> 6) ^ (state.a >> 5)) & 0x01) != 0


# SBX (AXS): X = (A & X) - imm。キャリーはCMPと同じ規則、Vは変化しない。
def sbx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    value = read_operand(state, bus, operand)
    masked = state.a & state.x
    state.p.carry, state.p.zero, state.p.negative = flags.compare(masked, value)
    state.x = (masked - value) & 0xFF


# ANE (XAA): A = (A | CONST) & X & imm
def ane(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = (state.a | MAGIC_CONSTANT) & state.x & read_operand(state, bus, operand)
    state.p.set_nz(state.a)


# LXA: A = X = (A | CONST) & imm
def lxa(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a = state.x = (state.a | MAGIC_CONSTANT) & read_operand(state, bus, operand)
    state.p.set_nz(state.a)


# --- High-byte stores (SHA, SHX, SHY, TAS) ---

def _store_and_high(bus: Bus, operand: Operand, index: int, value: int) -> None:
    base_hi = ((operand.address - index) & 0xFFFF) >> 8
    data = value & ((base_hi + 1) & 0xFF)
    address = operand.address
    if operand.page_crossed:
        address = (data << 8) | (address & 0xFF)
    bus.write(address, data)


def sha(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    _store_and_high(bus, operand, state.y, state.a & state.x)


def shx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    _store_and_high(bus, operand, state.y, state.x)


def shy(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    _store_and_high(bus, operand, state.x, state.y)


# TAS: SP = A & X、その後 SHA と同様にストア
def tas(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.sp = state.a & state.x
    _store_and_high(bus, operand, state.y, state.sp)
