# src/nes6502/arch/mos6502/instructions/alu.py
"""
MOS 6502 算術論理演算命令 (ALU)。
フラグの計算は flags モジュールの純粋関数に委譲し、ここでは結果の格納のみを行います。
"""
from typing import Callable, Tuple

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502 import flags
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.instructions.base import Operand, OperandKind, read_operand, write_operand

ShiftFunc = Callable[[int], Tuple[int, bool]]


# @intent:responsibility 加減算の結果をAとフラグに反映する共通処理。
def _apply(state: Mos6502State, res: flags.AluResult) -> None:
    state.a = res.result
    state.p.carry = res.carry
    state.p.overflow = res.overflow
    state.p.zero = res.zero
    state.p.negative = res.negative


# @intent:responsibility A + M + C。decimal_capable が真でDフラグが立っていればBCD加算。
def add_to_accumulator(state: Mos6502State, value: int, decimal_capable: bool = True) -> None:
    carry_in = int(state.p.carry)
    if decimal_capable and state.p.decimal:
        _apply(state, flags.add_decimal(state.a, value, carry_in))
    else:
        _apply(state, flags.add_with_carry(state.a, value, carry_in))


# @intent:responsibility A - M - (1 - C)。
def subtract_from_accumulator(state: Mos6502State, value: int, decimal_capable: bool = True) -> None:
    carry_in = int(state.p.carry)
    if decimal_capable and state.p.decimal:
        _apply(state, flags.subtract_decimal(state.a, value, carry_in))
    else:
        _apply(state, flags.subtract_with_borrow(state.a, value, carry_in))


# @intent:responsibility 比較命令の共通処理。レジスタは変更しない。
def compare_register(state: Mos6502State, register: int, value: int) -> None:
    state.p.carry, state.p.zero, state.p.negative = flags.compare(register, value)


# @intent:responsibility Read-Modify-Write命令の共通処理。
# @intent:note NMOS 6502は変更前の値を一度書き戻してから結果を書く（I/Oレジスタから観測可能）。
def modify(state: Mos6502State, bus: Bus, operand: Operand, operation: Callable[[int], int]) -> int:
    value = read_operand(state, bus, operand)
    if operand.kind is OperandKind.ADDRESS:
        bus.write(operand.address, value)
    res = operation(value) & 0xFF
    write_operand(state, bus, operand, res)
    return res


# --- Logical Operations (AND, ORA, EOR, BIT) ---

def and_(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a &= read_operand(state, bus, operand)
    state.p.set_nz(state.a)


def ora(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a |= read_operand(state, bus, operand)
    state.p.set_nz(state.a)


def eor(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.a ^= read_operand(state, bus, operand)
    state.p.set_nz(state.a)


# @intent:note BIT命令はメモリの値のビット6, 7をそれぞれV, Nフラグにコピーし、A & Mの結果でZフラグを設定する。
def bit(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    val = read_operand(state, bus, operand)
    state.p.zero = flags.is_zero(state.a & val)
    state.p.overflow = (val & 0x40) != 0
    state.p.negative = flags.is_negative(val)


# --- Arithmetic Operations (ADC, SBC) ---

def adc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    add_to_accumulator(state, read_operand(state, bus, operand))


def sbc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    subtract_from_accumulator(state, read_operand(state, bus, operand))


# 10進回路を持たない派生品 (2A03) 向け
def adc_binary(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    add_to_accumulator(state, read_operand(state, bus, operand), decimal_capable=False)


def sbc_binary(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    subtract_from_accumulator(state, read_operand(state, bus, operand), decimal_capable=False)


# --- Compare Operations (CMP, CPX, CPY) ---

def cmp(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    compare_register(state, state.a, read_operand(state, bus, operand))


def cpx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    compare_register(state, state.x, read_operand(state, bus, operand))


def cpy(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    compare_register(state, state.y, read_operand(state, bus, operand))


# --- Shift / Rotate Operations (ASL, LSR, ROL, ROR) ---
# @intent:note Accumulator mode or Memory mode. Cは押し出されたビット。

# @intent:responsibility シフト/ローテートを実行し、格納した結果を返す（非公式命令からも使う）。
def shift_operand(state: Mos6502State, bus: Bus, operand: Operand, shifter: ShiftFunc) -> int:
    def operation(value: int) -> int:
        res, state.p.carry = shifter(value)
        return res
    res = modify(state, bus, operand, operation)
    state.p.set_nz(res)
    return res


def rotate_left_operand(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    carry_in = state.p.carry
    return shift_operand(state, bus, operand, lambda value: flags.rotate_left(value, carry_in))


def rotate_right_operand(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    carry_in = state.p.carry
    return shift_operand(state, bus, operand, lambda value: flags.rotate_right(value, carry_in))


def asl(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    shift_operand(state, bus, operand, flags.shift_left)


def lsr(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    shift_operand(state, bus, operand, flags.shift_right)


def rol(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    rotate_left_operand(state, bus, operand)


def ror(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    rotate_right_operand(state, bus, operand)


# --- Increment / Decrement (INC, DEC, INX, DEX, INY, DEY) ---

def inc(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.set_nz(modify(state, bus, operand, lambda value: value + 1))


def dec(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.p.set_nz(modify(state, bus, operand, lambda value: value - 1))


def inx(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.x = (state.x + 1) & 0xFF
    state.p.set_nz(state.x)


def dex(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.x = (state.x - 1) & 0xFF
    state.p.set_nz(state.x)


def iny(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.y = (state.y + 1) & 0xFF
    state.p.set_nz(state.y)


def dey(state: Mos6502State, bus: Bus, operand: Operand) -> None:
    state.y = (state.y - 1) & 0xFF
    state.p.set_nz(state.y)
