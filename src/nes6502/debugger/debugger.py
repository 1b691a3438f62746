# nes6502/debugger/debugger.py
"""
デバッガモジュール。

CPUの実行を制御し、ユーザーが指定した条件（ブレークポイント）や
不正オペコードで実行を中断させる責務を負います。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import logging

from nes6502.arch.mos6502.cpu import Mos6502Cpu
from nes6502.arch.mos6502.state import Mos6502State
from nes6502.core.snapshot import Snapshot, StepOutcome
from nes6502.transport.bus import BusAccessType

logger = logging.getLogger(__name__)


# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した
    ILLEGAL_OPCODE = "ILLEGAL_OPCODE"   # 不正オペコードに到達した


# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用 (例: "a", "pc")
    enabled: bool = True


# @intent:responsibility CPUの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    不正オペコードに到達した場合、run() は常に停止します（CPUコアは停止方針を持たない）。
    """
    def __init__(self, cpu: Mos6502Cpu):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: Mos6502State = self._cpu.get_state()
        self._last_snapshot: Optional[Snapshot] = None
        self._history: List[Snapshot] = []
        # 履歴が尽きた時に戻るための初期状態
        self._initial_state: Mos6502State = self._cpu.get_state()

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    @property
    def is_running(self) -> bool:
        return self._running

    def _pc_breakpoint_at(self, pc: int) -> bool:
        return any(bp.enabled and bp.condition_type is BreakpointConditionType.PC_MATCH and bp.value == pc
                   for bp in self._breakpoints)

    def _check_other_breakpoints(self, snapshot: Snapshot) -> bool:
        """
        Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
        """
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type is BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type is BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type is BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.bus_activity:
                    if access.access_type is BusAccessType.WRITE and access.address == bp.address:
                        return True
            elif bp.condition_type is BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) == bp.value:
                        return True
            elif bp.condition_type is BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) != getattr(self._previous_state, bp.register_name):
                        return True
            elif bp.condition_type is BreakpointConditionType.ILLEGAL_OPCODE:
                if snapshot.outcome is StepOutcome.ILLEGAL_OPCODE:
                    return True
        return False

    def step_instruction(self) -> Snapshot:
        """
        CPUを1ステップ実行し、その結果のSnapshotを返します。
        """
        self._previous_state = self._cpu.get_state()
        snapshot = self._cpu.step()
        self._last_snapshot = snapshot
        self._history.append(snapshot)
        return snapshot

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1つ戻り、CPUとメモリの状態を復元します。
        """
        if not self._history:
            return None

        snapshot_to_revert = self._history.pop()
        bus = self._cpu.bus

        # バスアクティビティを逆順にスキャンし、書き込み操作を元に戻す（ROMも可、ログは残さない）
        for access in reversed(snapshot_to_revert.bus_activity):
            if access.access_type is BusAccessType.WRITE and access.previous_data is not None:
                bus.load(access.address, access.previous_data)

        if self._history:
            previous_snapshot = self._history[-1]
            self._cpu.restore_state(previous_snapshot.state)
            self._last_snapshot = previous_snapshot
            return previous_snapshot

        self._cpu.restore_state(self._initial_state)
        self._last_snapshot = None
        return None

    # @intent:responsibility ブレークポイント、不正オペコード、または max_steps に達するまで実行を継続します。
    # @intent:return 最後に実行したステップのSnapshot（1ステップも実行しなければNone）。
    def run(self, max_steps: Optional[int] = None) -> Optional[Snapshot]:
        self._running = True
        steps = 0
        snapshot = None

        # 現在のPCにあるブレークポイントからは抜け出せるようにする
        if self._pc_breakpoint_at(self._cpu.get_state().pc):
            snapshot = self.step_instruction()
            steps += 1

        while self._running:
            if max_steps is not None and steps >= max_steps:
                self._running = False
                break

            current_pc = self._cpu.get_state().pc
            if self._pc_breakpoint_at(current_pc):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", current_pc)
                break

            snapshot = self.step_instruction()
            steps += 1

            if snapshot.outcome is StepOutcome.ILLEGAL_OPCODE:
                self._running = False
                logger.info("Stopped on illegal opcode $%s at PC: %#06x",
                            snapshot.operation.opcode_hex, snapshot.state.pc)
                break

            if self._check_other_breakpoints(snapshot):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", snapshot.state.pc)

        return snapshot

    def run_back(self) -> None:
        """
        CPUの実行を逆方向（過去）へ連続的に戻します。
        """
        self._running = True

        while self._running:
            snapshot = self.step_back()

            if snapshot is None:
                self._running = False
                logger.info("Reached start of history.")
                return

            if self._pc_breakpoint_at(snapshot.state.pc) or self._check_other_breakpoints(snapshot):
                self._running = False
                logger.info("Reverse breakpoint hit at PC: %#06x", snapshot.state.pc)

    def stop(self) -> None:
        self._running = False
