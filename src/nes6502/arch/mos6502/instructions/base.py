# src/nes6502/arch/mos6502/instructions/base.py
"""
MOS 6502 アドレッシングモード解決ロジック。

各モードの解決関数は共通のシグネチャ (pc, bus, state) -> Operand を持ち、
命令の実装はモードに依存せず Operand だけを見て動作します。
"""
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State


class AddressingMode(Enum):
    IMPLIED = "IMP"
    ACCUMULATOR = "ACC"
    IMMEDIATE = "IMM"
    ZERO_PAGE = "ZP"
    ZERO_PAGE_X = "ZPX"
    ZERO_PAGE_Y = "ZPY"
    ABSOLUTE = "ABS"
    ABSOLUTE_X = "ABX"
    ABSOLUTE_Y = "ABY"
    INDIRECT = "IND"
    INDEXED_INDIRECT = "IZX"
    INDIRECT_INDEXED = "IZY"
    RELATIVE = "REL"


# @intent:responsibility オペランドの所在（メモリ、即値、アキュムレータ、なし）を区別する。
class OperandKind(Enum):
    ADDRESS = "ADDRESS"
    IMMEDIATE = "IMMEDIATE"
    ACCUMULATOR = "ACCUMULATOR"
    IMPLIED = "IMPLIED"


# @intent:responsibility アドレッシングモードの解決結果。
# address: 解決された実効アドレス（RELATIVEでは分岐先の絶対アドレス）
# value: IMMEDIATEの場合の値
# length: 命令全体のバイト数（オペコードを含む）
# page_crossed: インデックス加算や分岐でページ境界を越えたか
# text / operand_bytes: 逆アセンブル・トレース用
class Operand(NamedTuple):
    kind: OperandKind
    address: Optional[int]
    value: Optional[int]
    length: int
    page_crossed: bool
    text: str
    operand_bytes: List[int]


# @intent:responsibility ページ境界交差判定。
def is_page_crossed(addr1: int, addr2: int) -> bool:
    return (addr1 & 0xFF00) != (addr2 & 0xFF00)


def _address(addr: int, length: int, text: str, operand_bytes: List[int], crossed: bool = False) -> Operand:
    return Operand(OperandKind.ADDRESS, addr, None, length, crossed, text, operand_bytes)


# @intent:responsibility ゼロページ内の16bitポインタを読む。上位バイトもゼロページ内でラップする。
def read_zero_page_pointer(bus: Bus, ptr_addr: int) -> int:
    lo = bus.read(ptr_addr & 0xFF)
    hi = bus.read((ptr_addr + 1) & 0xFF)
    return (hi << 8) | lo


def _operand_byte(bus: Bus, pc: int, index: int) -> int:
    return bus.read((pc + index) & 0xFFFF)


# --- Addressing Modes ---

def addr_implied(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    return Operand(OperandKind.IMPLIED, None, None, 1, False, "", [])


def addr_accumulator(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    return Operand(OperandKind.ACCUMULATOR, None, None, 1, False, "A", [])


# @intent:responsibility Immediate Mode (#$xx)
def addr_immediate(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    val = _operand_byte(bus, pc, 1)
    return Operand(OperandKind.IMMEDIATE, None, val, 2, False, f"#${val:02X}", [val])


# @intent:responsibility Zero Page Mode ($xx)
def addr_zeropage(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    addr = _operand_byte(bus, pc, 1)
    return _address(addr, 2, f"${addr:02X}", [addr])


# @intent:responsibility Zero Page, X Mode ($xx,X)
# @intent:note ページ1へは繰り上がらない (0xFF + 1 -> 0x00)
def addr_zeropage_x(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    base = _operand_byte(bus, pc, 1)
    return _address((base + state.x) & 0xFF, 2, f"${base:02X},X", [base])


# @intent:responsibility Zero Page, Y Mode ($xx,Y) - LDX, STX, LAX, SAX
def addr_zeropage_y(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    base = _operand_byte(bus, pc, 1)
    return _address((base + state.y) & 0xFF, 2, f"${base:02X},Y", [base])


# @intent:responsibility Absolute Mode ($xxxx)
def addr_absolute(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    lo = _operand_byte(bus, pc, 1)
    hi = _operand_byte(bus, pc, 2)
    addr = (hi << 8) | lo
    return _address(addr, 3, f"${addr:04X}", [lo, hi])


def _absolute_indexed(pc: int, bus: Bus, index: int, register: str) -> Operand:
    lo = _operand_byte(bus, pc, 1)
    hi = _operand_byte(bus, pc, 2)
    base_addr = (hi << 8) | lo
    addr = (base_addr + index) & 0xFFFF
    # 交差したかのみを返し、サイクルの扱いは命令表側 (Penalty) で決める
    return _address(addr, 3, f"${base_addr:04X},{register}", [lo, hi], is_page_crossed(base_addr, addr))


# @intent:responsibility Absolute, X Mode ($xxxx,X)
def addr_absolute_x(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    return _absolute_indexed(pc, bus, state.x, "X")


# @intent:responsibility Absolute, Y Mode ($xxxx,Y)
def addr_absolute_y(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    return _absolute_indexed(pc, bus, state.y, "Y")


# @intent:responsibility Indirect Mode ($xxxx) - JMP only
# @intent:note ページ境界バグ: ポインタが$xxFFの場合、上位バイトは$xx00から読む
def addr_indirect(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    ptr_lo = _operand_byte(bus, pc, 1)
    ptr_hi = _operand_byte(bus, pc, 2)
    ptr = (ptr_hi << 8) | ptr_lo

    eff_lo = bus.read(ptr)
    eff_hi = bus.read((ptr & 0xFF00) | ((ptr + 1) & 0x00FF))

    addr = (eff_hi << 8) | eff_lo
    return _address(addr, 3, f"(${ptr:04X})", [ptr_lo, ptr_hi])


# @intent:responsibility Indexed Indirect Mode ($xx,X) - "Pre-indexed"
# @intent:note ゼロページ内でXを加算(ラップアラウンド)し、そこにあるポインタを読む。
def addr_indexed_indirect(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    base = _operand_byte(bus, pc, 1)
    addr = read_zero_page_pointer(bus, (base + state.x) & 0xFF)
    return _address(addr, 2, f"(${base:02X},X)", [base])


# @intent:responsibility Indirect Indexed Mode ($xx),Y - "Post-indexed"
# @intent:note ゼロページのポインタを読み、ベースアドレスを得てからYを桁上がり付きで加算。
def addr_indirect_indexed(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    ptr_addr = _operand_byte(bus, pc, 1)
    base_addr = read_zero_page_pointer(bus, ptr_addr)
    addr = (base_addr + state.y) & 0xFFFF
    return _address(addr, 2, f"(${ptr_addr:02X}),Y", [ptr_addr], is_page_crossed(base_addr, addr))


# @intent:responsibility Relative Mode (Branch)
# @intent:note 分岐先は「次の命令のPC + 符号付きオフセット」。page_crossed は分岐成立時のみ意味を持つ。
def addr_relative(pc: int, bus: Bus, state: Mos6502State) -> Operand:
    offset = _operand_byte(bus, pc, 1)
    # 符号付き8bitとして解釈
    displacement = offset - 0x100 if offset >= 0x80 else offset

    next_pc = (pc + 2) & 0xFFFF
    dest_addr = (next_pc + displacement) & 0xFFFF
    return _address(dest_addr, 2, f"${dest_addr:04X}", [offset], is_page_crossed(next_pc, dest_addr))


Resolver = Callable[[int, Bus, Mos6502State], Operand]

RESOLVERS: Dict[AddressingMode, Resolver] = {
    AddressingMode.IMPLIED: addr_implied,
    AddressingMode.ACCUMULATOR: addr_accumulator,
    AddressingMode.IMMEDIATE: addr_immediate,
    AddressingMode.ZERO_PAGE: addr_zeropage,
    AddressingMode.ZERO_PAGE_X: addr_zeropage_x,
    AddressingMode.ZERO_PAGE_Y: addr_zeropage_y,
    AddressingMode.ABSOLUTE: addr_absolute,
    AddressingMode.ABSOLUTE_X: addr_absolute_x,
    AddressingMode.ABSOLUTE_Y: addr_absolute_y,
    AddressingMode.INDIRECT: addr_indirect,
    AddressingMode.INDEXED_INDIRECT: addr_indexed_indirect,
    AddressingMode.INDIRECT_INDEXED: addr_indirect_indexed,
    AddressingMode.RELATIVE: addr_relative,
}

# 命令長（オペコード込み）。逆アセンブラなどレジスタ状態を持たない呼び出し元向け。
MODE_LENGTHS: Dict[AddressingMode, int] = {
    AddressingMode.IMPLIED: 1,
    AddressingMode.ACCUMULATOR: 1,
    AddressingMode.IMMEDIATE: 2,
    AddressingMode.ZERO_PAGE: 2,
    AddressingMode.ZERO_PAGE_X: 2,
    AddressingMode.ZERO_PAGE_Y: 2,
    AddressingMode.ABSOLUTE: 3,
    AddressingMode.ABSOLUTE_X: 3,
    AddressingMode.ABSOLUTE_Y: 3,
    AddressingMode.INDIRECT: 3,
    AddressingMode.INDEXED_INDIRECT: 2,
    AddressingMode.INDIRECT_INDEXED: 2,
    AddressingMode.RELATIVE: 2,
}


# @intent:responsibility オペランドの値を読み出す（即値、アキュムレータ、メモリ）。
def read_operand(state: Mos6502State, bus: Bus, operand: Operand) -> int:
    if operand.kind is OperandKind.IMMEDIATE:
        return operand.value
    if operand.kind is OperandKind.ACCUMULATOR:
        return state.a
    return bus.read(operand.address)


# @intent:responsibility 結果をオペランドの所在へ書き戻す（アキュムレータまたはメモリ）。
def write_operand(state: Mos6502State, bus: Bus, operand: Operand, value: int) -> None:
    if operand.kind is OperandKind.ACCUMULATOR:
        state.a = value & 0xFF
    else:
        bus.write(operand.address, value & 0xFF)
