import yaml
from typing import Dict, Any
from .models import SystemConfig, MemoryRegion, CpuInitialState, CpuVariant, REGION_TYPES

SUPPORTED_ARCHITECTURES = ("MOS6502", "2A03")


class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self._parse_config(data)

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(yaml.safe_load(text))

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping.")

        arch = str(data.get("architecture", "MOS6502")).upper()
        if arch not in SUPPORTED_ARCHITECTURES:
            raise ValueError(f"Unsupported architecture: {arch}")

        # Parse Memory Map
        memory_map = []
        for region_data in data.get("memory_map", []):
            rtype = str(region_data.get("type", "RAM")).upper()
            if rtype not in REGION_TYPES:
                raise ValueError(f"Unknown memory region type: {rtype}")
            mirror = region_data.get("mirror")

            memory_map.append(MemoryRegion(
                start=self._parse_int(region_data.get("start")),
                end=self._parse_int(region_data.get("end")),
                type=rtype,
                label=region_data.get("label", ""),
                mirror=None if mirror is None else self._parse_int(mirror),
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state", {})
        initial_state = CpuInitialState(
            pc=self._parse_int(initial_state_data.get("pc", 0)),
            sp=self._parse_int(initial_state_data.get("sp", 0xFD)),
            use_reset_vector=bool(initial_state_data.get("use_reset_vector", True)),
            registers={name: self._parse_int(value)
                       for name, value in initial_state_data.get("registers", {}).items()},
        )

        # 2A03 は10進回路を持たない
        variant_data = data.get("variant", {})
        variant = CpuVariant(
            decimal_mode=bool(variant_data.get("decimal_mode", arch != "2A03")),
            undocumented_opcodes=bool(variant_data.get("undocumented_opcodes", True)),
            indexed_write_always_penalized=bool(variant_data.get("indexed_write_always_penalized", True)),
        )

        return SystemConfig(
            architecture=arch,
            memory_map=memory_map,
            initial_state=initial_state,
            variant=variant,
        )

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                if value.lower().startswith("0x"):
                    return int(value, 16)
                if value.startswith("$"):
                    return int(value[1:], 16)
                return int(value)
            except ValueError:
                raise ValueError(f"Invalid integer format: {value}") from None
        raise ValueError(f"Invalid integer format: {value}")
