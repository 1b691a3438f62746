from typing import Tuple
import logging

from nes6502.transport.bus import Bus, RAM, ROM
from nes6502.arch.mos6502.cpu import Mos6502Cpu
from nes6502.arch.mos6502.dispatch import CpuOptions
from .models import SystemConfig, CpuInitialState

logger = logging.getLogger(__name__)


# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Mos6502Cpu, Bus]:
        bus = Bus()

        for region in config.memory_map:
            size = region.mirror or (region.end - region.start + 1)

            if region.type == "IO":
                # 外部デバイス（PPU/APUなど）は後から attach_device で接続する
                bus.register_io_window(region.start, region.end, mirror=region.mirror)
                continue

            if region.type == "RAM":
                device = RAM(size)
            elif region.type == "ROM":
                device = ROM(size)
            else:
                raise ValueError(f"Unknown memory region type: {region.type}")
            bus.register_device(region.start, region.end, device, mirror=region.mirror)

        if config.architecture not in ("MOS6502", "2A03"):
            raise ValueError(f"Unsupported architecture: {config.architecture}")

        variant = config.variant
        options = CpuOptions(
            decimal_mode=variant.decimal_mode,
            undocumented_opcodes=variant.undocumented_opcodes,
            indexed_write_always_penalized=variant.indexed_write_always_penalized,
        )
        cpu = Mos6502Cpu(bus, options)

        # 初期状態の適用
        self.apply_initial_state(cpu, config.initial_state)

        return cpu, bus

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    # @intent:pre-condition リセットベクタを使う場合、プログラムイメージはこの呼び出しより前にロード済みであること。
    def apply_initial_state(self, cpu: Mos6502Cpu, config_state: CpuInitialState) -> None:
        """
        use_reset_vector が真ならRESETシーケンスを実行し、偽ならPC/SP/レジスタを直接設定します。
        """
        if config_state.use_reset_vector:
            cpu.reset()
            return

        state = cpu.get_state().replace(pc=config_state.pc & 0xFFFF, sp=config_state.sp & 0xFF)
        for reg_name, value in config_state.registers.items():
            if reg_name in ("a", "x", "y"):
                setattr(state, reg_name, value & 0xFF)
            else:
                logger.warning("Ignoring unknown register '%s' in initial state", reg_name)
        cpu.restore_state(state)
