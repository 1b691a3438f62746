# src/nes6502/arch/mos6502/state.py
"""
MOS 6502 CPUの状態定義。

ステータスレジスタは名前付きフィールドを持つ小さな構造体として表現し、
スタックに積む際にのみ to_byte() でビット列へ変換します。
Bフラグ（Break）はスタック上のバイトにのみ存在するため、フィールドとしては持ちません。
"""
from dataclasses import dataclass, field, replace

from nes6502.transport.bus import Bus

STACK_PAGE = 0x0100
NMI_VECTOR = 0xFFFA
RESET_VECTOR = 0xFFFC
IRQ_VECTOR = 0xFFFE  # BRK shares the IRQ vector

# Flag bit masks (stacked byte layout)
C_FLAG = 0x01  # Carry
Z_FLAG = 0x02  # Zero
I_FLAG = 0x04  # Interrupt Disable
D_FLAG = 0x08  # Decimal Mode
B_FLAG = 0x10  # Break (stack copy only)
R_FLAG = 0x20  # Reserved (Always 1)
V_FLAG = 0x40  # Overflow
N_FLAG = 0x80  # Negative

POWER_ON_SP = 0x00  # RESETでSPが3減算され、0xFDになる


# @intent:responsibility 6502のステータスフラグを保持し、バイト表現との相互変換を提供する。
@dataclass
class StatusFlags:
    carry: bool = False
    zero: bool = False
    irq_disable: bool = True
    decimal: bool = False
    overflow: bool = False
    negative: bool = False

    # @intent:responsibility スタックに積む形式のバイトへ変換する。予約ビットは常に1。
    def to_byte(self, brk: bool = False) -> int:
        value = R_FLAG
        if self.carry: value |= C_FLAG
        if self.zero: value |= Z_FLAG
        if self.irq_disable: value |= I_FLAG
        if self.decimal: value |= D_FLAG
        if brk: value |= B_FLAG
        if self.overflow: value |= V_FLAG
        if self.negative: value |= N_FLAG
        return value

    # @intent:responsibility スタックから取り出したバイトを解釈する。ビット4,5は無視される。
    @classmethod
    def from_byte(cls, value: int) -> 'StatusFlags':
        return cls(
            carry=bool(value & C_FLAG),
            zero=bool(value & Z_FLAG),
            irq_disable=bool(value & I_FLAG),
            decimal=bool(value & D_FLAG),
            overflow=bool(value & V_FLAG),
            negative=bool(value & N_FLAG),
        )

    def set_nz(self, value: int) -> None:
        self.zero = (value & 0xFF) == 0
        self.negative = (value & 0x80) != 0


# @intent:responsibility MOS 6502 CPUの状態（レジスタ、フラグ、割り込み線）を保持する。
# @intent:rationale 実行中に存在するインスタンスは1つで、命令実装はこれをその場で更新する。
@dataclass
class Mos6502State:
    """
    MOS 6502 CPUのレジスタ状態。

    sp はスタックページ内の8bitオフセットで、実アドレスは 0x0100 + sp。
    cycles はリセット（または生成）以降の累積サイクル数。
    """
    pc: int = 0x0000
    sp: int = POWER_ON_SP
    a: int = 0
    x: int = 0
    y: int = 0
    p: StatusFlags = field(default_factory=StatusFlags)
    nmi_pending: bool = False
    irq_line: bool = False
    cycles: int = 0

    # @intent:responsibility フラグの状態を取得するヘルパープロパティ。
    @property
    def flag_c(self) -> bool: return self.p.carry
    @property
    def flag_z(self) -> bool: return self.p.zero
    @property
    def flag_i(self) -> bool: return self.p.irq_disable
    @property
    def flag_d(self) -> bool: return self.p.decimal
    @property
    def flag_v(self) -> bool: return self.p.overflow
    @property
    def flag_n(self) -> bool: return self.p.negative

    # --- Stack ---

    # @intent:responsibility スタックに1バイト積む。SPは0x00から0xFFへラップする。
    def push(self, bus: Bus, value: int) -> None:
        bus.write(STACK_PAGE | self.sp, value & 0xFF)
        self.sp = (self.sp - 1) & 0xFF

    def pull(self, bus: Bus) -> int:
        self.sp = (self.sp + 1) & 0xFF
        return bus.read(STACK_PAGE | self.sp)

    # Push Hi, then Lo
    def push_word(self, bus: Bus, value: int) -> None:
        self.push(bus, (value >> 8) & 0xFF)
        self.push(bus, value & 0xFF)

    def pull_word(self, bus: Bus) -> int:
        lo = self.pull(bus)
        hi = self.pull(bus)
        return (hi << 8) | lo

    # @intent:responsibility 独立したコピーを返す（Snapshot、履歴用）。
    def copy(self) -> 'Mos6502State':
        return replace(self, p=replace(self.p))

    # @intent:responsibility dataclasses.replaceのラッパー。フラグは共有しない。
    def replace(self, **changes) -> 'Mos6502State':
        changes.setdefault("p", replace(self.p))
        return replace(self, **changes)
