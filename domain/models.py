"""
Typed results returned by the LMS1xx driver.

Every device operation has its own result dataclass. A result never holds a
reference to the connection; it is built from the raw reply bytes only.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from protocol.frame_codec import telegram_text


class SocketConnectionResult(IntEnum):
    CONNECTED = 0
    CONNECT_TIMEOUT = 1
    CONNECT_ERROR = 2
    DISCONNECTED = 3
    DISCONNECT_TIMEOUT = 4
    DISCONNECT_ERROR = 5

    @property
    def is_error(self) -> bool:
        return self not in (SocketConnectionResult.CONNECTED, SocketConnectionResult.DISCONNECTED)

    @property
    def cause(self) -> str:
        return _CONNECTION_CAUSES.get(self, "")


_CONNECTION_CAUSES = {
    SocketConnectionResult.CONNECT_TIMEOUT: "Timed out while connecting to the device.",
    SocketConnectionResult.CONNECT_ERROR: "Could not connect to the device.",
    SocketConnectionResult.DISCONNECT_TIMEOUT: "Timed out while closing the connection.",
    SocketConnectionResult.DISCONNECT_ERROR: "Error while closing the connection.",
}


class NetworkStreamResult(IntEnum):
    STARTED = 0
    STOPPED = 1
    TIMEOUT = 2
    ERROR = 3
    CLIENT_NOT_CONNECTED = 4

    @property
    def is_error(self) -> bool:
        return self not in (NetworkStreamResult.STARTED, NetworkStreamResult.STOPPED)

    @property
    def cause(self) -> str:
        return _STREAM_CAUSES.get(self, "")


_STREAM_CAUSES = {
    NetworkStreamResult.TIMEOUT: "Timed out while writing to the device.",
    NetworkStreamResult.ERROR: "Network stream error.",
    NetworkStreamResult.CLIENT_NOT_CONNECTED: "Client socket not connected.",
}


class UserLevel(IntEnum):
    MAINTENANCE = 0
    AUTHORIZED_CLIENT = 1
    SERVICE = 2


class ScanFrequency(IntEnum):
    TWENTY_FIVE_HERTZ = 0
    FIFTY_HERTZ = 1


class AngularResolution(IntEnum):
    ZERO_POINT_TWENTY_FIVE_DEGREES = 0
    ZERO_POINT_FIFTY_DEGREES = 1


class DeviceStatus(IntEnum):
    BUSY = 0
    READY = 1
    ERROR = 2


class ScanConfigStatus(IntEnum):
    NO_ERROR = 0
    FREQUENCY_ERROR = 1
    RESOLUTION_ERROR = 2
    RESOLUTION_AND_SCANAREA_ERROR = 3
    SCANAREA_ERROR = 4
    OTHER_ERRORS = 5


class ErrorKind(Enum):
    NOT_CONNECTED = "NotConnected"
    CONNECT_TIMEOUT = "ConnectTimeout"
    CONNECT_ERROR = "ConnectError"
    DISCONNECT_TIMEOUT = "DisconnectTimeout"
    DISCONNECT_ERROR = "DisconnectError"
    IO_TIMEOUT = "IoTimeout"
    IO_ERROR = "IoError"
    NULL_REPLY = "NullReply"
    DECODE_FORMAT_ERROR = "DecodeFormatError"
    DEVICE_ERROR = "DeviceError"
    UNEXPECTED_REPLY = "UnexpectedReply"


@dataclass
class OperationResult:
    is_error: bool = False
    error_kind: ErrorKind | None = None
    error: Exception | None = None
    raw_data: bytes | None = None

    @property
    def cause(self) -> str:
        if not self.is_error:
            return ""
        if self.error is not None:
            return str(self.error)
        return self.error_kind.value if self.error_kind else "Unknown error"

    @property
    def raw_data_string(self) -> str:
        return telegram_text(self.raw_data)

    @classmethod
    def failure(cls, kind: ErrorKind, error: Exception, raw_data: bytes | None = None):
        return cls(is_error=True, error_kind=kind, error=error, raw_data=raw_data)


@dataclass
class SetAccessModeResult(OperationResult):
    pass


@dataclass
class RebootResult(OperationResult):
    pass


@dataclass
class LoginResult(OperationResult):
    command_type: str | None = None
    command: str | None = None
    changed_user_level: bool = False


@dataclass
class ReadDeviceStateResult(OperationResult):
    command_type: str | None = None
    command: str | None = None
    status: DeviceStatus = DeviceStatus.ERROR


@dataclass
class ReadDeviceTemperatureResult(OperationResult):
    command_type: str | None = None
    command: str | None = None
    temperature: float | None = None


@dataclass
class SetScanConfigurationResult(OperationResult):
    command_type: str | None = None
    command: str | None = None
    status_code: ScanConfigStatus = ScanConfigStatus.OTHER_ERRORS
    scan_frequency: float | None = None
    number_of_active_sectors: float | None = None
    angular_resolution: float | None = None
    start_angle: float | None = None
    stop_angle: float | None = None


@dataclass
class ScanDataResult(OperationResult):
    command_type: str | None = None
    command: str | None = None
    version_number: int | None = None
    device_number: int | None = None
    serial_number: int | None = None
    device_status: str | None = None
    telegram_counter: int | None = None
    scan_counter: int | None = None
    time_since_startup: int | None = None
    time_of_transmission: int | None = None
    status_of_digital_inputs: str | None = None
    status_of_digital_outputs: str | None = None
    reserved: int | None = None
    scan_frequency: float | None = None
    measurement_frequency: float | None = None
    encoder_count: int | None = None
    encoder_position: int | None = None
    encoder_speed: int | None = None
    channel_count: int | None = None
    content: str | None = None
    scale_factor: str | None = None
    scale_factor_offset: str | None = None
    start_angle: float | None = None
    angular_step: float | None = None
    point_count: int | None = None
    distances: list[float] = field(default_factory=list)
