# src/nes6502/arch/mos6502/cpu.py
"""
MOS 6502 CPUエミュレーションの中心モジュール。

命令の実行そのものは dispatch.step() が担い、このクラスはそれを包んで
トレース用の Snapshot（実行後状態のコピー、命令、バスアクティビティ）を組み立てます。
"""
from typing import Dict, List, Optional, Tuple

from nes6502.core.snapshot import Operation, Metadata, Snapshot, StepOutcome
from nes6502.transport.bus import Bus
from nes6502.arch.mos6502 import dispatch, interrupts, disassembler
from nes6502.arch.mos6502.dispatch import CpuOptions, DEFAULT_OPTIONS, StepResult
from nes6502.arch.mos6502.state import Mos6502State, STACK_PAGE
from nes6502.arch.mos6502.instructions.maps import JAM_OPCODES, opcode_table

# @intent:data_structure シンボル名とアドレスをマッピングする辞書の型エイリアス。
SymbolMap = Dict[str, int]


# @intent:responsibility MOS 6502 CPUの実行を駆動し、1ステップごとのSnapshotを提供する。
class Mos6502Cpu:
    """
    MOS 6502 CPUをエミュレートするクラス。
    """
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus, options: CpuOptions = DEFAULT_OPTIONS):
        self._bus = bus
        self._options = options
        self._state = Mos6502State()
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}

    @property
    def options(self) -> CpuOptions:
        return self._options

    @property
    def bus(self) -> Bus:
        return self._bus

    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        """
        シンボルマップ（名前とアドレスの対応表）を設定します。
        """
        self._symbol_map = symbol_map
        # 逆引きマップを作成して、アドレスからラベルを素早く引けるようにする
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility RESET線のアサートを模擬する。PCはリセットベクタから読み込まれる。
    def reset(self) -> int:
        return interrupts.reset(self._state, self._bus)

    def raise_nmi(self) -> None:
        interrupts.raise_nmi(self._state)

    def raise_irq(self) -> None:
        interrupts.raise_irq(self._state)

    def clear_irq(self) -> None:
        interrupts.clear_irq(self._state)

    # @intent:responsibility 外部公開用のStateを取得する際、SPを物理アドレスに補正する。
    # @intent:note 返すのはコピーであり、内部状態は変更されない。
    def get_state(self) -> Mos6502State:
        return self._state.replace(sp=STACK_PAGE | (self._state.sp & 0xFF))

    # @intent:responsibility 状態を復元する（デバッガのステップバック、初期状態の適用）。
    # @intent:note get_state() が返す物理アドレス表記のSPも受け付ける。
    def restore_state(self, state: Mos6502State) -> None:
        self._state = state.replace(sp=state.sp & 0xFF)

    # @intent:responsibility CPUを1ステップ進め、その結果のスナップショットを返します。
    def step(self) -> Snapshot:
        """
        CPUを1命令（または1回の割り込み受け付け）進め、その時点でのCPUとバスの状態を含むSnapshotを返します。
        """
        initial_pc = self._state.pc

        result = dispatch.step(self._state, self._bus, self._options)
        operation = self._build_operation(result)
        bus_activity = self._bus.get_and_clear_activity_log()

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += operation.mnemonic
        if operation.operands:
            symbol_info += " " + ", ".join(operation.operands)

        return Snapshot(
            state=self.get_state(),
            operation=operation,
            metadata=Metadata(cycle_count=self._state.cycles, symbol_info=symbol_info),
            bus_activity=bus_activity,
            outcome=result.outcome,
        )

    def _build_operation(self, result: StepResult) -> Operation:
        if result.outcome is StepOutcome.INTERRUPT:
            return Operation(opcode_hex="", mnemonic=result.interrupt.value, cycle_count=result.cycles, length=0)
        if result.outcome is StepOutcome.ILLEGAL_OPCODE:
            mnemonic = "JAM" if result.opcode in JAM_OPCODES else "???"
            return Operation(opcode_hex=f"{result.opcode:02X}", mnemonic=mnemonic, cycle_count=0, length=0)

        operand = result.operand
        return Operation(
            opcode_hex=f"{result.opcode:02X}",
            mnemonic=result.descriptor.mnemonic,
            operands=[operand.text] if operand.text else [],
            operand_bytes=list(operand.operand_bytes),
            cycle_count=result.cycles,
            length=operand.length,
        )

    # @intent:responsibility レジスタマップ（トレース表示用）を返す。
    def get_register_map(self) -> Dict[str, int]:
        state = self.get_state()  # 補正済みSPを取得
        return {
            "A": state.a,
            "X": state.x,
            "Y": state.y,
            "PC": state.pc,
            "S": state.sp,  # $01xx
            "P": state.p.to_byte(),
        }

    # @intent:responsibility フラグ状態を返す。Bはスタック上にのみ存在するため含まない。
    def get_flag_state(self) -> Dict[str, bool]:
        state = self._state
        return {
            "N": state.flag_n,
            "V": state.flag_v,
            "D": state.flag_d,
            "I": state.flag_i,
            "Z": state.flag_z,
            "C": state.flag_c,
        }

    # @intent:responsibility 指定範囲の逆アセンブル結果を返す。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        table = opcode_table(self._options.decimal_mode, self._options.undocumented_opcodes)
        return disassembler.disassemble(self._bus, start_addr, length, table)

    def get_label(self, address: int) -> Optional[str]:
        return self._reverse_symbol_map.get(address)
