import logging

from domain.models import (
    AngularResolution,
    ErrorKind,
    LoginResult,
    NetworkStreamResult,
    OperationResult,
    ReadDeviceStateResult,
    ReadDeviceTemperatureResult,
    RebootResult,
    ScanDataResult,
    ScanFrequency,
    SetAccessModeResult,
    SetScanConfigurationResult,
    SocketConnectionResult,
    UserLevel,
)
from pipeline.scan_cycle import full_scan_cycle, full_scan_cycle_async
from protocol.command_registry import answers_request, describe_telegram
from protocol.command_composer import (
    compose_device_state_command,
    compose_device_temperature_command,
    compose_login_command,
    compose_reboot_command,
    compose_scan_data_command,
    compose_set_access_mode_command,
    compose_set_scan_config_command,
    compose_start_command,
    compose_stop_command,
)
from protocol.reply_parser import (
    DecodeFormatError,
    parse_device_state_reply,
    parse_device_temperature_reply,
    parse_error_reply,
    parse_login_reply,
    parse_scan_data_reply,
    parse_set_scan_config_reply,
)
from transport.tcp_interface import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ConnectionSettings,
    TcpTelegramIO,
)


logger = logging.getLogger(__name__)


class LMS1xx:
    """
    Driver for SICK LMS1xx laser scanners.

    - One instance owns one TCP session; operations must be called one at a
      time. Running two operations concurrently on the same instance is not
      supported: both would share the socket and read each other's replies.
    - Operations never raise for device, I/O or decoding problems. They return
      a result with `is_error`, `error_kind` and a readable `cause`.
    - Any I/O failure puts the driver back in the disconnected state.
    """

    def __init__(
        self,
        ip_address: str = "",
        port: int = DEFAULT_PORT,
        receive_timeout: float | None = DEFAULT_TIMEOUT,
        send_timeout: float | None = DEFAULT_TIMEOUT,
        *,
        receive_buffer_size: int | None = None,
        read_until_terminator: bool = False,
        log_fn=None,
        log_data_lines: bool = False,
        data_log_every: int = 50,
        io: TcpTelegramIO | None = None,
    ):
        self.log_fn = log_fn or logger.debug
        self.settings = ConnectionSettings(
            ip_address=ip_address,
            port=port,
            receive_timeout=receive_timeout,
            send_timeout=send_timeout,
            receive_buffer_size=receive_buffer_size,
            read_until_terminator=read_until_terminator,
        )
        self.io = io or TcpTelegramIO(
            self.settings,
            log_fn=self.log_fn,
            log_data_lines=log_data_lines,
            data_log_every=data_log_every,
        )

    @property
    def ip_address(self) -> str:
        return self.settings.ip_address

    @property
    def port(self) -> int:
        return self.settings.port

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def is_connected(self) -> bool:
        return self.io.is_connected()

    def connect(self) -> SocketConnectionResult:
        return self.io.connect()

    async def connect_async(self) -> SocketConnectionResult:
        return await self.io.connect_async()

    def disconnect(self) -> SocketConnectionResult:
        return self.io.disconnect()

    async def disconnect_async(self) -> SocketConnectionResult:
        return await self.io.disconnect_async()

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------
    def start(self) -> NetworkStreamResult:
        """
        Start the laser and (unless in standby) the motor of the device.
        """
        return self._send_only(compose_start_command(), NetworkStreamResult.STARTED)

    async def start_async(self) -> NetworkStreamResult:
        return await self._send_only_async(compose_start_command(), NetworkStreamResult.STARTED)

    def stop(self) -> NetworkStreamResult:
        """
        Shut off the laser and stop the motor of the device.
        """
        return self._send_only(compose_stop_command(), NetworkStreamResult.STOPPED)

    async def stop_async(self) -> NetworkStreamResult:
        return await self._send_only_async(compose_stop_command(), NetworkStreamResult.STOPPED)

    # The device acknowledges start/stop, but the acknowledgement is not read here.
    def _send_only(self, command: bytes, success: NetworkStreamResult) -> NetworkStreamResult:
        if not self.is_connected():
            return NetworkStreamResult.CLIENT_NOT_CONNECTED
        try:
            self.io.send(command)
        except OSError as e:
            return self._stream_failure(e)
        return success

    async def _send_only_async(self, command: bytes, success: NetworkStreamResult) -> NetworkStreamResult:
        if not self.is_connected():
            return NetworkStreamResult.CLIENT_NOT_CONNECTED
        try:
            await self.io.send_async(command)
        except OSError as e:
            return self._stream_failure(e)
        return success

    def _stream_failure(self, error: OSError) -> NetworkStreamResult:
        self.io.last_error = error
        self.log_fn(f"Write failed: {error!r}")
        self.io.reset()
        if isinstance(error, TimeoutError):
            return NetworkStreamResult.TIMEOUT
        return NetworkStreamResult.ERROR

    # ------------------------------------------------------------------
    # Raw exchange
    # ------------------------------------------------------------------
    def execute_raw(self, command: bytes) -> bytes | None:
        """
        Send a pre-framed telegram and return the raw reply buffer, or None.
        Unframed bytes raise ValueError.
        """
        return self.io.execute(command)

    async def execute_raw_async(self, command: bytes) -> bytes | None:
        return await self.io.execute_async(command)

    # ------------------------------------------------------------------
    # Device operations
    # ------------------------------------------------------------------
    def set_access_mode(self) -> SetAccessModeResult:
        return self._request(SetAccessModeResult, compose_set_access_mode_command())

    async def set_access_mode_async(self) -> SetAccessModeResult:
        return await self._request_async(SetAccessModeResult, compose_set_access_mode_command())

    def login(self, level: UserLevel) -> LoginResult:
        return self._request(LoginResult, compose_login_command(level), parse_login_reply)

    async def login_async(self, level: UserLevel) -> LoginResult:
        return await self._request_async(LoginResult, compose_login_command(level), parse_login_reply)

    def read_scan_data(self) -> ScanDataResult:
        """
        Values of the last valid scan. The device answers even when it is not
        measuring.
        """
        return self._request(
            ScanDataResult, compose_scan_data_command(), parse_scan_data_reply, check_answer=False
        )

    async def read_scan_data_async(self) -> ScanDataResult:
        return await self._request_async(
            ScanDataResult, compose_scan_data_command(), parse_scan_data_reply, check_answer=False
        )

    def set_scan_configuration(
        self,
        frequency: ScanFrequency,
        resolution: AngularResolution,
    ) -> SetScanConfigurationResult:
        command = compose_set_scan_config_command(frequency, resolution)
        return self._request(SetScanConfigurationResult, command, parse_set_scan_config_reply)

    async def set_scan_configuration_async(
        self,
        frequency: ScanFrequency,
        resolution: AngularResolution,
    ) -> SetScanConfigurationResult:
        command = compose_set_scan_config_command(frequency, resolution)
        return await self._request_async(SetScanConfigurationResult, command, parse_set_scan_config_reply)

    def read_device_state(self) -> ReadDeviceStateResult:
        return self._request(ReadDeviceStateResult, compose_device_state_command(), parse_device_state_reply)

    async def read_device_state_async(self) -> ReadDeviceStateResult:
        return await self._request_async(
            ReadDeviceStateResult, compose_device_state_command(), parse_device_state_reply
        )

    def read_device_temperature(self) -> ReadDeviceTemperatureResult:
        return self._request(
            ReadDeviceTemperatureResult, compose_device_temperature_command(), parse_device_temperature_reply
        )

    async def read_device_temperature_async(self) -> ReadDeviceTemperatureResult:
        return await self._request_async(
            ReadDeviceTemperatureResult, compose_device_temperature_command(), parse_device_temperature_reply
        )

    def reboot(self) -> RebootResult:
        """
        Reboot the device. Only accepted at AUTHORIZED_CLIENT or SERVICE level;
        the device itself rejects the request otherwise.
        """
        return self._request(RebootResult, compose_reboot_command())

    async def reboot_async(self) -> RebootResult:
        return await self._request_async(RebootResult, compose_reboot_command())

    # ------------------------------------------------------------------
    # Composite workflow
    # ------------------------------------------------------------------
    def full_scan_cycle(self) -> ScanDataResult:
        return full_scan_cycle(self)

    async def full_scan_cycle_async(self) -> ScanDataResult:
        return await full_scan_cycle_async(self)

    # ------------------------------------------------------------------
    # Request/reply template
    # ------------------------------------------------------------------
    def _request(self, result_cls, command: bytes, parse=None, *, check_answer=True):
        if not self.is_connected():
            return result_cls.failure(ErrorKind.NOT_CONNECTED, ConnectionError("Client socket not connected."))
        raw = self.io.execute(command)
        return self._build_result(result_cls, command, raw, parse, check_answer)

    async def _request_async(self, result_cls, command: bytes, parse=None, *, check_answer=True):
        if not self.is_connected():
            return result_cls.failure(ErrorKind.NOT_CONNECTED, ConnectionError("Client socket not connected."))
        raw = await self.io.execute_async(command)
        return self._build_result(result_cls, command, raw, parse, check_answer)

    def _build_result(
        self, result_cls, command: bytes, raw: bytes | None, parse, check_answer: bool = True
    ) -> OperationResult:
        if raw is None:
            return self._io_failure(result_cls)

        mismatch = None
        if not answers_request(command, raw):
            mismatch = f"Reply {describe_telegram(raw)} does not answer {describe_telegram(command)}"
            self.log_fn(mismatch)

        # Raw pass-through operations are not decoded at all.
        if parse is None:
            return result_cls(raw_data=raw)

        error_code = parse_error_reply(raw)
        if error_code is not None:
            return result_cls.failure(
                ErrorKind.DEVICE_ERROR,
                RuntimeError(f"Device rejected the command (sFA {error_code})"),
                raw,
            )

        # A stale reply (e.g. the unread start/stop acknowledgement) must not be
        # decoded as this command's answer. Scan reads keep the partial record.
        if mismatch and check_answer:
            return result_cls.failure(ErrorKind.UNEXPECTED_REPLY, RuntimeError(mismatch), raw)

        try:
            fields = parse(raw)
        except DecodeFormatError as e:
            self.log_fn(f"Failed to decode reply: {e}")
            return result_cls.failure(ErrorKind.DECODE_FORMAT_ERROR, e, raw)
        return result_cls(raw_data=raw, **fields)

    def _io_failure(self, result_cls):
        error = self.io.last_error
        if error is None:
            return result_cls.failure(ErrorKind.NULL_REPLY, ConnectionError("Raw data is null."))

        # Never keep using a socket that failed mid-exchange.
        self.io.reset()
        if isinstance(error, TimeoutError):
            return result_cls.failure(ErrorKind.IO_TIMEOUT, error)
        return result_cls.failure(ErrorKind.IO_ERROR, error)
