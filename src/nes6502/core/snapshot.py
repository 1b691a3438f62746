# nes6502/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1ステップ実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
トレース出力とデバッガの履歴（ステップバック）に用いる責務を負います。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from nes6502.transport.bus import BusAccess


# @intent:responsibility 1ステップの実行結果の種別を表す。
# @intent:rationale 不正オペコードは例外ではなく値として返し、停止・トラップなどの方針は呼び出し側が決める。
class StepOutcome(Enum):
    EXECUTED = "EXECUTED"
    ILLEGAL_OPCODE = "ILLEGAL_OPCODE"
    INTERRUPT = "INTERRUPT"


# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    """
    実行された命令の詳細（HEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str  # 例: "A9"
    mnemonic: str  # 例: "LDA"
    operands: List[str] = field(default_factory=list)  # 例: ["#$10"]
    operand_bytes: List[int] = field(default_factory=list)
    cycle_count: int = 0  # このステップで消費したサイクル数（ページ交差・分岐成立分を含む）
    length: int = 1


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    cycle_count: int  # 累計サイクル数
    symbol_info: Optional[str] = None  # 例: "main_loop: JMP $8000"


# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    1ステップ実行直後のCPU状態、実行した命令、そのステップ中のバスアクセスを保持します。
    state は実行後の状態のコピーであり、以降のCPUの実行で変化しません。
    """
    state: Any
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
    outcome: StepOutcome = StepOutcome.EXECUTED
