# nes6502/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、6502の16bitアドレス空間を抽象化し、
読み書きアクセスをミラーリング規則に従って適切なデバイスへ委譲する責務を負います。
アドレス空間は全域で有効であり、どのアドレスへのアクセスも例外にはなりません。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFF


# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"


# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True)
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    previous_data は書き込みで上書きされた値（ストレージデバイスのみ）で、デバッガのUndoに使用されます。
    """
    address: int
    data: int  # 8bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None


# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    PPUやAPUのようなメモリマップドI/Oデバイスもこのインターフェースを実装します。
    """
    # @intent:responsibility 指定されたオフセットから8bitのデータを読み出します。
    # @intent:pre-condition offsetはデバイス窓内の正規化済みオフセットです（ミラー解決済み）。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたオフセットに8bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass


# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    内部RAMやカートリッジ空間のバッキングストアとして使うRAMデバイス。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray(size)
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for {type(self).__name__} of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for {type(self).__name__} of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size


# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    バス経由の書き込みは無視され、load_data 経由でのみ内容を初期化できます。
    """
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        # ROM writes are ignored as on hardware.
        logger.debug("Ignored write of $%02X to ROM offset $%04X", data, address)

    # @intent:responsibility ROMの内容を初期化するためのバックドアメソッドです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)


# @intent:data_structure メモリマップ上の1つの窓（アドレス範囲、ミラー周期、接続デバイス）。
class MappedRegion(NamedTuple):
    start: int
    end: int
    mirror: int
    device: Optional[Device]

    def offset_of(self, address: int) -> int:
        return (address - self.start) % self.mirror


# @intent:responsibility 16bitアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。

    - ミラー周期付きで登録された窓は、全エイリアスが同じデバイスオフセットに解決されます。
    - どのデバイスにもマップされていないアドレス、およびデバイス未接続のI/O窓は
      オープンバスとして振る舞います（読み出しは最後にバスに乗った値、書き込みは無視）。
    """
    def __init__(self):
        self._memory_map: List[MappedRegion] = []
        self._bus_activity_log: List[BusAccess] = []
        self._open_bus: int = 0x00

    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(BusAccess(address, data, access_type, previous_data))

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition start <= end かつ 0x0000-0xFFFF 内であり、mirror は窓サイズ以下の正の整数です。
    # @intent:rationale 範囲の重複チェックは行いません。先に登録された窓が優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device,
                        mirror: Optional[int] = None) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        mirror を指定すると、窓内のアドレスは (address - start) % mirror のオフセットに正規化されます。
        """
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")
        self._add_region(start_address, end_address, device, mirror)

    # @intent:responsibility 外部デバイス用のI/Oレジスタ窓を宣言します。デバイスは後から接続できます。
    def register_io_window(self, start_address: int, end_address: int,
                           mirror: Optional[int] = None, device: Optional[Device] = None) -> None:
        if device is not None and not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")
        self._add_region(start_address, end_address, device, mirror)

    # @intent:responsibility 宣言済みのI/O窓にデバイスを接続します。
    def attach_device(self, start_address: int, device: Optional[Device]) -> None:
        if device is not None and not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")
        for index, region in enumerate(self._memory_map):
            if region.start == start_address:
                self._memory_map[index] = region._replace(device=device)
                return
        raise ValueError(f"No window registered at {start_address:#06x}.")

    # @intent:responsibility I/O窓からデバイスを切り離し、オープンバス動作に戻します。
    def detach_device(self, start_address: int) -> None:
        self.attach_device(start_address, None)

    def _add_region(self, start_address: int, end_address: int, device: Optional[Device],
                    mirror: Optional[int]) -> None:
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within 0x0000-0xFFFF.")
        window_size = end_address - start_address + 1
        if mirror is None:
            mirror = window_size
        if not isinstance(mirror, int) or not 0 < mirror <= window_size:
            raise ValueError(f"Invalid mirror period {mirror!r} for window of {window_size} bytes.")

        # 固定サイズのストレージはミラー周期と一致する必要がある
        if isinstance(device, RAM) and device.get_size() != mirror:
            raise ValueError(
                f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                f"the mirrored window size ({mirror} bytes)."
            )
        self._memory_map.append(MappedRegion(start_address, end_address, mirror, device))

    # @intent:responsibility アドレスに対応する窓を検索します。見つからなければNone（オープンバス）。
    def _find_region(self, address: int) -> Optional[MappedRegion]:
        for region in self._memory_map:
            if region.start <= address <= region.end:
                return region
        return None

    # @intent:responsibility 指定されたアドレスから8bitのデータを読み出します。
    def read(self, address: int) -> int:
        address &= ADDRESS_MASK
        region = self._find_region(address)
        if region is None or region.device is None:
            data = self._open_bus
            logger.debug("Open bus read at $%04X -> $%02X", address, data)
        else:
            data = region.device.read(region.offset_of(address))
            self._open_bus = data
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します（ログ記録なし）。
        I/Oデバイスの読み出し副作用を避けるため、ストレージ以外の窓はオープンバス値を返します。
        """
        address &= ADDRESS_MASK
        region = self._find_region(address)
        if region is None or not isinstance(region.device, RAM):
            return self._open_bus
        return region.device.read(region.offset_of(address))

    # @intent:responsibility 指定されたアドレスに8bitのデータを書き込みます。
    def write(self, address: int, data: int) -> None:
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        address &= ADDRESS_MASK
        self._open_bus = data
        region = self._find_region(address)
        previous = None
        if region is None or region.device is None:
            logger.debug("Open bus write at $%04X <- $%02X ignored", address, data)
        else:
            offset = region.offset_of(address)
            if isinstance(region.device, RAM):
                previous = region.device.read(offset)
            region.device.write(offset, data)
        self._log_access(address, data, BusAccessType.WRITE, previous)

    # @intent:responsibility プログラムイメージをロードします。ROMにも書き込め、ログは残りません。
    def load(self, address: int, data: int) -> None:
        address &= ADDRESS_MASK
        region = self._find_region(address)
        if region is None or not isinstance(region.device, RAM):
            raise ValueError(f"Address {address:#06x} is not backed by storage.")
        offset = region.offset_of(address)
        if isinstance(region.device, ROM):
            region.device.load_data(offset, data)
        else:
            region.device.write(offset, data)

    def load_block(self, address: int, data: Iterable[int]) -> None:
        for index, value in enumerate(data):
            self.load((address + index) & ADDRESS_MASK, value)

    # @intent:responsibility 16bitリトルエンディアン値を読み出します（ベクタ読み出し用）。
    def read_word(self, address: int) -> int:
        lo = self.read(address)
        hi = self.read((address + 1) & ADDRESS_MASK)
        return (hi << 8) | lo

    def get_memory_map(self) -> List[Tuple[int, int, int, Optional[Device]]]:
        return [tuple(region) for region in self._memory_map]
