# src/nes6502/arch/mos6502/instructions/maps.py
"""
MOS 6502 命令マップ。

256通りの全オペコードについて、命令表 (OPCODE_MAP) かJAM集合 (JAM_OPCODES) の
どちらか一方に必ず含まれます。JAMはCPUを停止させるバイトで、実行要求は不正オペコードとして扱います。
"""
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Mapping, NamedTuple, Optional

from nes6502.transport.bus import Bus
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.arch.mos6502.instructions import base, load, alu, control, undocumented
from nes6502.arch.mos6502.instructions.base import AddressingMode, Operand

# Execution Function Type: 追加サイクル数（分岐のみ）を返すことがある
ExecFunc = Callable[[Mos6502State, Bus, Operand], Optional[int]]


# @intent:responsibility 命令ごとに追加サイクルがどう決まるかを表す。
class Penalty(Enum):
    NONE = "NONE"
    PAGE_CROSS = "PAGE_CROSS"        # 読み出し系: ページ交差時に+1
    INDEXED_WRITE = "INDEXED_WRITE"  # 書き込み/RMW系: 基本サイクルに交差分が常に含まれる


# @intent:data_structure 命令表の1エントリ。プロセス全体で不変。
class InstructionDescriptor(NamedTuple):
    mnemonic: str
    mode: AddressingMode
    execute: ExecFunc
    cycles: int
    penalty: Penalty = Penalty.NONE
    documented: bool = True


IMP = AddressingMode.IMPLIED
ACC = AddressingMode.ACCUMULATOR
IMM = AddressingMode.IMMEDIATE
ZP = AddressingMode.ZERO_PAGE
ZPX = AddressingMode.ZERO_PAGE_X
ZPY = AddressingMode.ZERO_PAGE_Y
ABS = AddressingMode.ABSOLUTE
ABX = AddressingMode.ABSOLUTE_X
ABY = AddressingMode.ABSOLUTE_Y
IND = AddressingMode.INDIRECT
IZX = AddressingMode.INDEXED_INDIRECT
IZY = AddressingMode.INDIRECT_INDEXED
REL = AddressingMode.RELATIVE

P = Penalty.PAGE_CROSS
W = Penalty.INDEXED_WRITE

D = InstructionDescriptor


def U(mnemonic: str, mode: AddressingMode, execute: ExecFunc, cycles: int,
      penalty: Penalty = Penalty.NONE) -> InstructionDescriptor:
    return InstructionDescriptor(mnemonic, mode, execute, cycles, penalty, documented=False)


OPCODE_MAP: Dict[int, InstructionDescriptor] = {
    # --- Load/Store/Transfer ---
    0xA9: D("LDA", IMM, load.lda, 2),
    0xA5: D("LDA", ZP, load.lda, 3),
    0xB5: D("LDA", ZPX, load.lda, 4),
    0xAD: D("LDA", ABS, load.lda, 4),
    0xBD: D("LDA", ABX, load.lda, 4, P),
    0xB9: D("LDA", ABY, load.lda, 4, P),
    0xA1: D("LDA", IZX, load.lda, 6),
    0xB1: D("LDA", IZY, load.lda, 5, P),

    0xA2: D("LDX", IMM, load.ldx, 2),
    0xA6: D("LDX", ZP, load.ldx, 3),
    0xB6: D("LDX", ZPY, load.ldx, 4),
    0xAE: D("LDX", ABS, load.ldx, 4),
    0xBE: D("LDX", ABY, load.ldx, 4, P),

    0xA0: D("LDY", IMM, load.ldy, 2),
    0xA4: D("LDY", ZP, load.ldy, 3),
    0xB4: D("LDY", ZPX, load.ldy, 4),
    0xAC: D("LDY", ABS, load.ldy, 4),
    0xBC: D("LDY", ABX, load.ldy, 4, P),

    0x85: D("STA", ZP, load.sta, 3),
    0x95: D("STA", ZPX, load.sta, 4),
    0x8D: D("STA", ABS, load.sta, 4),
    0x9D: D("STA", ABX, load.sta, 5, W),
    0x99: D("STA", ABY, load.sta, 5, W),
    0x81: D("STA", IZX, load.sta, 6),
    0x91: D("STA", IZY, load.sta, 6, W),

    0x86: D("STX", ZP, load.stx, 3),
    0x96: D("STX", ZPY, load.stx, 4),
    0x8E: D("STX", ABS, load.stx, 4),

    0x84: D("STY", ZP, load.sty, 3),
    0x94: D("STY", ZPX, load.sty, 4),
    0x8C: D("STY", ABS, load.sty, 4),

    0xAA: D("TAX", IMP, load.tax, 2),
    0xA8: D("TAY", IMP, load.tay, 2),
    0x8A: D("TXA", IMP, load.txa, 2),
    0x98: D("TYA", IMP, load.tya, 2),
    0x9A: D("TXS", IMP, load.txs, 2),
    0xBA: D("TSX", IMP, load.tsx, 2),

    # --- ALU Operations ---
    # ADC
    0x69: D("ADC", IMM, alu.adc, 2),
    0x65: D("ADC", ZP, alu.adc, 3),
    0x75: D("ADC", ZPX, alu.adc, 4),
    0x6D: D("ADC", ABS, alu.adc, 4),
    0x7D: D("ADC", ABX, alu.adc, 4, P),
    0x79: D("ADC", ABY, alu.adc, 4, P),
    0x61: D("ADC", IZX, alu.adc, 6),
    0x71: D("ADC", IZY, alu.adc, 5, P),

    # SBC
    0xE9: D("SBC", IMM, alu.sbc, 2),
    0xE5: D("SBC", ZP, alu.sbc, 3),
    0xF5: D("SBC", ZPX, alu.sbc, 4),
    0xED: D("SBC", ABS, alu.sbc, 4),
    0xFD: D("SBC", ABX, alu.sbc, 4, P),
    0xF9: D("SBC", ABY, alu.sbc, 4, P),
    0xE1: D("SBC", IZX, alu.sbc, 6),
    0xF1: D("SBC", IZY, alu.sbc, 5, P),

    # CMP
    0xC9: D("CMP", IMM, alu.cmp, 2),
    0xC5: D("CMP", ZP, alu.cmp, 3),
    0xD5: D("CMP", ZPX, alu.cmp, 4),
    0xCD: D("CMP", ABS, alu.cmp, 4),
    0xDD: D("CMP", ABX, alu.cmp, 4, P),
    0xD9: D("CMP", ABY, alu.cmp, 4, P),
    0xC1: D("CMP", IZX, alu.cmp, 6),
    0xD1: D("CMP", IZY, alu.cmp, 5, P),

    # CPX
    0xE0: D("CPX", IMM, alu.cpx, 2),
    0xE4: D("CPX", ZP, alu.cpx, 3),
    0xEC: D("CPX", ABS, alu.cpx, 4),

    # CPY
    0xC0: D("CPY", IMM, alu.cpy, 2),
    0xC4: D("CPY", ZP, alu.cpy, 3),
    0xCC: D("CPY", ABS, alu.cpy, 4),

    # AND
    0x29: D("AND", IMM, alu.and_, 2),
    0x25: D("AND", ZP, alu.and_, 3),
    0x35: D("AND", ZPX, alu.and_, 4),
    0x2D: D("AND", ABS, alu.and_, 4),
    0x3D: D("AND", ABX, alu.and_, 4, P),
    0x39: D("AND", ABY, alu.and_, 4, P),
    0x21: D("AND", IZX, alu.and_, 6),
    0x31: D("AND", IZY, alu.and_, 5, P),

    # ORA
    0x09: D("ORA", IMM, alu.ora, 2),
    0x05: D("ORA", ZP, alu.ora, 3),
    0x15: D("ORA", ZPX, alu.ora, 4),
    0x0D: D("ORA", ABS, alu.ora, 4),
    0x1D: D("ORA", ABX, alu.ora, 4, P),
    0x19: D("ORA", ABY, alu.ora, 4, P),
    0x01: D("ORA", IZX, alu.ora, 6),
    0x11: D("ORA", IZY, alu.ora, 5, P),

    # EOR
    0x49: D("EOR", IMM, alu.eor, 2),
    0x45: D("EOR", ZP, alu.eor, 3),
    0x55: D("EOR", ZPX, alu.eor, 4),
    0x4D: D("EOR", ABS, alu.eor, 4),
    0x5D: D("EOR", ABX, alu.eor, 4, P),
    0x59: D("EOR", ABY, alu.eor, 4, P),
    0x41: D("EOR", IZX, alu.eor, 6),
    0x51: D("EOR", IZY, alu.eor, 5, P),

    # BIT
    0x24: D("BIT", ZP, alu.bit, 3),
    0x2C: D("BIT", ABS, alu.bit, 4),

    # Shift / Rotate
    0x0A: D("ASL", ACC, alu.asl, 2),
    0x06: D("ASL", ZP, alu.asl, 5),
    0x16: D("ASL", ZPX, alu.asl, 6),
    0x0E: D("ASL", ABS, alu.asl, 6),
    0x1E: D("ASL", ABX, alu.asl, 7, W),

    0x4A: D("LSR", ACC, alu.lsr, 2),
    0x46: D("LSR", ZP, alu.lsr, 5),
    0x56: D("LSR", ZPX, alu.lsr, 6),
    0x4E: D("LSR", ABS, alu.lsr, 6),
    0x5E: D("LSR", ABX, alu.lsr, 7, W),

    0x2A: D("ROL", ACC, alu.rol, 2),
    0x26: D("ROL", ZP, alu.rol, 5),
    0x36: D("ROL", ZPX, alu.rol, 6),
    0x2E: D("ROL", ABS, alu.rol, 6),
    0x3E: D("ROL", ABX, alu.rol, 7, W),

    0x6A: D("ROR", ACC, alu.ror, 2),
    0x66: D("ROR", ZP, alu.ror, 5),
    0x76: D("ROR", ZPX, alu.ror, 6),
    0x6E: D("ROR", ABS, alu.ror, 6),
    0x7E: D("ROR", ABX, alu.ror, 7, W),

    # INC/DEC
    0xE6: D("INC", ZP, alu.inc, 5),
    0xF6: D("INC", ZPX, alu.inc, 6),
    0xEE: D("INC", ABS, alu.inc, 6),
    0xFE: D("INC", ABX, alu.inc, 7, W),

    0xC6: D("DEC", ZP, alu.dec, 5),
    0xD6: D("DEC", ZPX, alu.dec, 6),
    0xCE: D("DEC", ABS, alu.dec, 6),
    0xDE: D("DEC", ABX, alu.dec, 7, W),

    0xE8: D("INX", IMP, alu.inx, 2),
    0xCA: D("DEX", IMP, alu.dex, 2),
    0xC8: D("INY", IMP, alu.iny, 2),
    0x88: D("DEY", IMP, alu.dey, 2),

    # --- Control Instructions ---
    # Branch: +1 if taken, +2 if taken across a page
    0x90: D("BCC", REL, control.bcc, 2),
    0xB0: D("BCS", REL, control.bcs, 2),
    0xF0: D("BEQ", REL, control.beq, 2),
    0xD0: D("BNE", REL, control.bne, 2),
    0x30: D("BMI", REL, control.bmi, 2),
    0x10: D("BPL", REL, control.bpl, 2),
    0x50: D("BVC", REL, control.bvc, 2),
    0x70: D("BVS", REL, control.bvs, 2),

    # Jump / Subroutine
    0x4C: D("JMP", ABS, control.jmp, 3),
    0x6C: D("JMP", IND, control.jmp, 5),
    0x20: D("JSR", ABS, control.jsr, 6),
    0x60: D("RTS", IMP, control.rts, 6),

    # Stack
    0x48: D("PHA", IMP, control.pha, 3),
    0x08: D("PHP", IMP, control.php, 3),
    0x68: D("PLA", IMP, control.pla, 4),
    0x28: D("PLP", IMP, control.plp, 4),

    # Flags
    0x18: D("CLC", IMP, control.clc, 2),
    0x38: D("SEC", IMP, control.sec, 2),
    0x58: D("CLI", IMP, control.cli, 2),
    0x78: D("SEI", IMP, control.sei, 2),
    0xB8: D("CLV", IMP, control.clv, 2),
    0xD8: D("CLD", IMP, control.cld, 2),
    0xF8: D("SED", IMP, control.sed, 2),

    # System
    0xEA: D("NOP", IMP, control.nop, 2),
    0x00: D("BRK", IMP, control.brk, 7),
    0x40: D("RTI", IMP, control.rti, 6),

    # --- Undocumented (NMOS) ---
    # NOP variants
    0x1A: U("NOP", IMP, control.nop, 2),
    0x3A: U("NOP", IMP, control.nop, 2),
    0x5A: U("NOP", IMP, control.nop, 2),
    0x7A: U("NOP", IMP, control.nop, 2),
    0xDA: U("NOP", IMP, control.nop, 2),
    0xFA: U("NOP", IMP, control.nop, 2),
    0x80: U("NOP", IMM, control.nop, 2),
    0x82: U("NOP", IMM, control.nop, 2),
    0x89: U("NOP", IMM, control.nop, 2),
    0xC2: U("NOP", IMM, control.nop, 2),
    0xE2: U("NOP", IMM, control.nop, 2),
    0x04: U("NOP", ZP, control.nop, 3),
    0x44: U("NOP", ZP, control.nop, 3),
    0x64: U("NOP", ZP, control.nop, 3),
    0x14: U("NOP", ZPX, control.nop, 4),
    0x34: U("NOP", ZPX, control.nop, 4),
    0x54: U("NOP", ZPX, control.nop, 4),
    0x74: U("NOP", ZPX, control.nop, 4),
    0xD4: U("NOP", ZPX, control.nop, 4),
    0xF4: U("NOP", ZPX, control.nop, 4),
    0x0C: U("NOP", ABS, control.nop, 4),
    0x1C: U("NOP", ABX, control.nop, 4, P),
    0x3C: U("NOP", ABX, control.nop, 4, P),
    0x5C: U("NOP", ABX, control.nop, 4, P),
    0x7C: U("NOP", ABX, control.nop, 4, P),
    0xDC: U("NOP", ABX, control.nop, 4, P),
    0xFC: U("NOP", ABX, control.nop, 4, P),

    # LAX / SAX / LAS
    0xA7: U("LAX", ZP, undocumented.lax, 3),
    0xB7: U("LAX", ZPY, undocumented.lax, 4),
    0xAF: U("LAX", ABS, undocumented.lax, 4),
    0xBF: U("LAX", ABY, undocumented.lax, 4, P),
    0xA3: U("LAX", IZX, undocumented.lax, 6),
    0xB3: U("LAX", IZY, undocumented.lax, 5, P),
    0x87: U("SAX", ZP, undocumented.sax, 3),
    0x97: U("SAX", ZPY, undocumented.sax, 4),
    0x8F: U("SAX", ABS, undocumented.sax, 4),
    0x83: U("SAX", IZX, undocumented.sax, 6),
    0xBB: U("LAS", ABY, undocumented.las, 4, P),

    # SBC duplicate
    0xEB: U("SBC", IMM, alu.sbc, 2),

    # DCP
    0xC7: U("DCP", ZP, undocumented.dcp, 5),
    0xD7: U("DCP", ZPX, undocumented.dcp, 6),
    0xCF: U("DCP", ABS, undocumented.dcp, 6),
    0xDF: U("DCP", ABX, undocumented.dcp, 7, W),
    0xDB: U("DCP", ABY, undocumented.dcp, 7, W),
    0xC3: U("DCP", IZX, undocumented.dcp, 8),
    0xD3: U("DCP", IZY, undocumented.dcp, 8, W),

    # ISC
    0xE7: U("ISC", ZP, undocumented.isc, 5),
    0xF7: U("ISC", ZPX, undocumented.isc, 6),
    0xEF: U("ISC", ABS, undocumented.isc, 6),
    0xFF: U("ISC", ABX, undocumented.isc, 7, W),
    0xFB: U("ISC", ABY, undocumented.isc, 7, W),
    0xE3: U("ISC", IZX, undocumented.isc, 8),
    0xF3: U("ISC", IZY, undocumented.isc, 8, W),

    # SLO
    0x07: U("SLO", ZP, undocumented.slo, 5),
    0x17: U("SLO", ZPX, undocumented.slo, 6),
    0x0F: U("SLO", ABS, undocumented.slo, 6),
    0x1F: U("SLO", ABX, undocumented.slo, 7, W),
    0x1B: U("SLO", ABY, undocumented.slo, 7, W),
    0x03: U("SLO", IZX, undocumented.slo, 8),
    0x13: U("SLO", IZY, undocumented.slo, 8, W),

    # RLA
    0x27: U("RLA", ZP, undocumented.rla, 5),
    0x37: U("RLA", ZPX, undocumented.rla, 6),
    0x2F: U("RLA", ABS, undocumented.rla, 6),
    0x3F: U("RLA", ABX, undocumented.rla, 7, W),
    0x3B: U("RLA", ABY, undocumented.rla, 7, W),
    0x23: U("RLA", IZX, undocumented.rla, 8),
    0x33: U("RLA", IZY, undocumented.rla, 8, W),

    # SRE
    0x47: U("SRE", ZP, undocumented.sre, 5),
    0x57: U("SRE", ZPX, undocumented.sre, 6),
    0x4F: U("SRE", ABS, undocumented.sre, 6),
    0x5F: U("SRE", ABX, undocumented.sre, 7, W),
    0x5B: U("SRE", ABY, undocumented.sre, 7, W),
    0x43: U("SRE", IZX, undocumented.sre, 8),
    0x53: U("SRE", IZY, undocumented.sre, 8, W),

    # RRA
    0x67: U("RRA", ZP, undocumented.rra, 5),
    0x77: U("RRA", ZPX, undocumented.rra, 6),
    0x6F: U("RRA", ABS, undocumented.rra, 6),
    0x7F: U("RRA", ABX, undocumented.rra, 7, W),
    0x7B: U("RRA", ABY, undocumented.rra, 7, W),
    0x63: U("RRA", IZX, undocumented.rra, 8),
    0x73: U("RRA", IZY, undocumented.rra, 8, W),

    # Immediate combinations
    0x0B: U("ANC", IMM, undocumented.anc, 2),
    0x2B: U("ANC", IMM, undocumented.anc, 2),
    0x4B: U("ALR", IMM, undocumented.alr, 2),
    0x6B: U("ARR", IMM, undocumented.arr, 2),
    0xCB: U("SBX", IMM, undocumented.sbx, 2),
    0x8B: U("ANE", IMM, undocumented.ane, 2),
    0xAB: U("LXA", IMM, undocumented.lxa, 2),

    # High-byte stores
    0x9F: U("SHA", ABY, undocumented.sha, 5, W),
    0x93: U("SHA", IZY, undocumented.sha, 6, W),
    0x9E: U("SHX", ABY, undocumented.shx, 5, W),
    0x9C: U("SHY", ABX, undocumented.shy, 5, W),
    0x9B: U("TAS", ABY, undocumented.tas, 5, W),
}

# CPUを停止させるオペコード (KIL/JAM)
JAM_OPCODES: FrozenSet[int] = frozenset({
    0x02, 0x12, 0x22, 0x32, 0x42, 0x52, 0x62, 0x72, 0x92, 0xB2, 0xD2, 0xF2,
})

# 10進回路を持たない派生品で差し替える実行関数
_BINARY_VARIANTS: Dict[ExecFunc, ExecFunc] = {
    alu.adc: alu.adc_binary,
    alu.sbc: alu.sbc_binary,
    undocumented.isc: undocumented.isc_binary,
    undocumented.rra: undocumented.rra_binary,
}


# @intent:responsibility CPUの派生品設定に応じた命令表を返す（不変、設定ごとにキャッシュ）。
@lru_cache(maxsize=None)
def opcode_table(decimal_mode: bool = True, undocumented_opcodes: bool = True) -> Mapping[int, InstructionDescriptor]:
    table = {}
    for opcode, descriptor in OPCODE_MAP.items():
        if not undocumented_opcodes and not descriptor.documented:
            continue
        if not decimal_mode:
            descriptor = descriptor._replace(
                execute=_BINARY_VARIANTS.get(descriptor.execute, descriptor.execute))
        table[opcode] = descriptor
    return MappingProxyType(table)


# @intent:responsibility オペコードから命令記述子を引く。表に無ければNone（不正オペコード）。
def decode_opcode(opcode: int, table: Optional[Mapping[int, InstructionDescriptor]] = None) -> Optional[InstructionDescriptor]:
    if table is None:
        table = OPCODE_MAP
    return table.get(opcode & 0xFF)


# @intent:responsibility 記述子のアドレッシングモードでオペランドを解決する。
def resolve_operand(descriptor: InstructionDescriptor, pc: int, bus: Bus, state: Mos6502State) -> Operand:
    return base.RESOLVERS[descriptor.mode](pc, bus, state)
