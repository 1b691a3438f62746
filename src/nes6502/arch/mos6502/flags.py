"""
MOS 6502 フラグ計算ユーティリティ。

全ての関数は演算の入力と結果のみから値を計算する純粋関数で、
CPUの状態を読み書きしません。各命令の実装はこれらを組み合わせてフラグを更新します。
"""
from typing import NamedTuple, Tuple


# @intent:data_structure 加減算の結果とフラグをまとめて返すための型。
class AluResult(NamedTuple):
    result: int
    carry: bool
    overflow: bool
    zero: bool
    negative: bool


def is_zero(value: int) -> bool:
    return (value & 0xFF) == 0


def is_negative(value: int) -> bool:
    return (value & 0x80) != 0


# @intent:responsibility 加算のキャリー: 9bit和が255を超えたか。
def add_carry(a: int, b: int, carry_in: int) -> bool:
    return a + b + carry_in > 0xFF


# @intent:responsibility 加算のオーバーフロー: 同符号の2数から異符号の結果が出たか。
def add_overflow(a: int, b: int, result: int) -> bool:
    return (~(a ^ b) & (a ^ result) & 0x80) != 0


# @intent:responsibility 減算のキャリー: 借りが発生しなかったか（キャリーは借りの否定として入力される）。
def sub_carry(a: int, b: int, carry_in: int) -> bool:
    return a - b - (1 - carry_in) >= 0


# @intent:responsibility 減算のオーバーフロー: 異符号の2数で、結果の符号が被減数と異なるか。
def sub_overflow(a: int, b: int, result: int) -> bool:
    return ((a ^ b) & (a ^ result) & 0x80) != 0


# @intent:responsibility CMP/CPX/CPYのフラグ (C, Z, N) を計算する。
def compare(register: int, operand: int) -> Tuple[bool, bool, bool]:
    diff = (register - operand) & 0xFF
    return register >= operand, diff == 0, is_negative(diff)


# --- Shift / Rotate ---
# 戻り値は (結果, 押し出されたビット)

def shift_left(value: int) -> Tuple[int, bool]:
    return (value << 1) & 0xFF, (value & 0x80) != 0


def shift_right(value: int) -> Tuple[int, bool]:
    return value >> 1, (value & 0x01) != 0


def rotate_left(value: int, carry_in: bool) -> Tuple[int, bool]:
    return ((value << 1) | int(carry_in)) & 0xFF, (value & 0x80) != 0


def rotate_right(value: int, carry_in: bool) -> Tuple[int, bool]:
    return (value >> 1) | (int(carry_in) << 7), (value & 0x01) != 0


# --- Binary arithmetic ---

def add_with_carry(a: int, b: int, carry_in: int) -> AluResult:
    res = (a + b + carry_in) & 0xFF
    return AluResult(res, add_carry(a, b, carry_in), add_overflow(a, b, res), is_zero(res), is_negative(res))


def subtract_with_borrow(a: int, b: int, carry_in: int) -> AluResult:
    res = (a - b - (1 - carry_in)) & 0xFF
    return AluResult(res, sub_carry(a, b, carry_in), sub_overflow(a, b, res), is_zero(res), is_negative(res))


# --- Decimal (BCD) arithmetic ---

# @intent:responsibility NMOS 6502の10進加算。
# @intent:note Zは2進和から、N/Vは上位桁補正前の中間値から決まる（NMOSの実機挙動）。
def add_decimal(a: int, b: int, carry_in: int) -> AluResult:
    lo = (a & 0x0F) + (b & 0x0F) + carry_in
    if lo > 0x09:
        lo += 0x06
    hi = (a >> 4) + (b >> 4) + (1 if lo > 0x0F else 0)

    zero = is_zero(a + b + carry_in)
    intermediate = (hi << 4) & 0xFF
    negative = is_negative(intermediate)
    overflow = add_overflow(a, b, intermediate)

    if hi > 0x09:
        hi += 0x06
    carry = hi > 0x0F
    res = ((hi << 4) | (lo & 0x0F)) & 0xFF
    return AluResult(res, carry, overflow, zero, negative)


# @intent:responsibility NMOS 6502の10進減算。フラグは全て2進減算と同じ値になる。
def subtract_decimal(a: int, b: int, carry_in: int) -> AluResult:
    binary = subtract_with_borrow(a, b, carry_in)

    lo = (a & 0x0F) - (b & 0x0F) - (1 - carry_in)
    hi = (a >> 4) - (b >> 4)
    if lo < 0:
        lo -= 0x06
        hi -= 1
    if hi < 0:
        hi -= 0x06
    res = ((hi << 4) | (lo & 0x0F)) & 0xFF
    return binary._replace(result=res)
