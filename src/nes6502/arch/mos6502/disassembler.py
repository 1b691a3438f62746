# src/nes6502/arch/mos6502/disassembler.py
"""
MOS 6502 逆アセンブラ。
"""
from typing import List, Mapping, Optional, Tuple

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.instructions.base import AddressingMode, MODE_LENGTHS
from nes6502.arch.mos6502.instructions.maps import InstructionDescriptor, OPCODE_MAP, JAM_OPCODES


# @intent:responsibility アドレッシングモードとオペランドバイトからアセンブラ表記を作る。
# @intent:note レジスタ状態を使わないため、インデックス付きモードは実効アドレスではなくベースを表示する。
def format_operand(mode: AddressingMode, operand_bytes: List[int], addr: int) -> str:
    if mode is AddressingMode.IMPLIED:
        return ""
    if mode is AddressingMode.ACCUMULATOR:
        return "A"
    if mode is AddressingMode.RELATIVE:
        offset = operand_bytes[0]
        displacement = offset - 0x100 if offset >= 0x80 else offset
        return f"${(addr + 2 + displacement) & 0xFFFF:04X}"

    if len(operand_bytes) == 2:
        value = f"${(operand_bytes[1] << 8) | operand_bytes[0]:04X}"
    else:
        value = f"${operand_bytes[0]:02X}"

    return {
        AddressingMode.IMMEDIATE: f"#{value}",
        AddressingMode.ZERO_PAGE_X: f"{value},X",
        AddressingMode.ZERO_PAGE_Y: f"{value},Y",
        AddressingMode.ABSOLUTE_X: f"{value},X",
        AddressingMode.ABSOLUTE_Y: f"{value},Y",
        AddressingMode.INDIRECT: f"({value})",
        AddressingMode.INDEXED_INDIRECT: f"({value},X)",
        AddressingMode.INDIRECT_INDEXED: f"({value}),Y",
    }.get(mode, value)


# @intent:responsibility 指定されたメモリ範囲を逆アセンブルする。
def disassemble(bus: Bus, start_addr: int, length: int,
                table: Optional[Mapping[int, InstructionDescriptor]] = None) -> List[Tuple[int, str, str]]:
    """
    メモリを解析し、(アドレス, HEX, ニーモニック) のリストを返す。
    バスへの読み出しは peek で行うため、I/Oデバイスの副作用やアクティビティログは発生しない。
    """
    if table is None:
        table = OPCODE_MAP
    results = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        addr = current_addr & 0xFFFF
        opcode = bus.peek(addr)
        entry = table.get(opcode)

        if entry is None:
            text = "JAM" if opcode in JAM_OPCODES else f"DB ${opcode:02X}"
            results.append((addr, f"{opcode:02X}", text))
            current_addr += 1
            continue

        instr_len = MODE_LENGTHS[entry.mode]
        raw = [bus.peek((addr + i) & 0xFFFF) for i in range(instr_len)]
        hex_str = " ".join(f"{b:02X}" for b in raw)
        mnemonic_full = f"{entry.mnemonic} {format_operand(entry.mode, raw[1:], addr)}".strip()

        results.append((addr, hex_str, mnemonic_full))
        current_addr += instr_len

    return results
