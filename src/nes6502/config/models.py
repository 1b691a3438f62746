from dataclasses import dataclass, field
from typing import List, Optional

REGION_TYPES = ("RAM", "ROM", "IO")


@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "RAM", "ROM", "IO"
    label: str = ""
    mirror: Optional[int] = None  # エイリアス周期。Noneなら窓全体が1つのデバイス


@dataclass
class CpuInitialState:
    pc: int = 0x0000
    sp: int = 0xFD
    use_reset_vector: bool = True  # True: RESETシーケンスでPCを$FFFCから読み込む
    registers: dict = field(default_factory=dict)


@dataclass
class CpuVariant:
    decimal_mode: bool = True
    undocumented_opcodes: bool = True
    indexed_write_always_penalized: bool = True


@dataclass
class SystemConfig:
    architecture: str = "MOS6502"
    memory_map: List[MemoryRegion] = field(default_factory=list)
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    variant: CpuVariant = field(default_factory=CpuVariant)


# @intent:responsibility NESのCPUアドレス空間の既定構成を返す。
def nes_default_config() -> SystemConfig:
    return SystemConfig(
        architecture="MOS6502",
        memory_map=[
            MemoryRegion(0x0000, 0x1FFF, "RAM", "Internal RAM", mirror=0x0800),
            MemoryRegion(0x2000, 0x3FFF, "IO", "PPU registers", mirror=8),
            MemoryRegion(0x4000, 0x401F, "IO", "APU / IO registers"),
            MemoryRegion(0x4020, 0xFFFF, "RAM", "Cartridge space"),
        ],
        variant=CpuVariant(decimal_mode=False),
    )
