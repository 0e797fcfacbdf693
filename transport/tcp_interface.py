import asyncio
import logging
import socket
from dataclasses import dataclass

import lms_command_ids as CMD
from domain.models import SocketConnectionResult
from protocol.frame_codec import contains_terminator, is_framed_telegram, telegram_text


logger = logging.getLogger(__name__)

DEFAULT_PORT = 2111
DEFAULT_TIMEOUT = 1.0
# Send timeout given to the replacement socket after a disconnect (None = blocking).
# Only the receive timeout carries over to the new socket.
REPLACEMENT_SEND_TIMEOUT = None


@dataclass(frozen=True)
class ConnectionSettings:
    ip_address: str = ""
    port: int = DEFAULT_PORT
    receive_timeout: float | None = DEFAULT_TIMEOUT
    send_timeout: float | None = DEFAULT_TIMEOUT
    # None: use the socket's SO_RCVBUF.
    receive_buffer_size: int | None = None
    # False: one recv per reply. True: keep reading until ETX is seen.
    read_until_terminator: bool = False


class TcpTelegramIO:
    """
    Telegram reader/writer over a single TCP socket.

    - Owns exactly one socket. Disconnecting, or any failure while connecting,
      replaces it with a freshly constructed, unconnected socket.
    - Sends framed telegrams "<STX>...<ETX>" and reads the reply with a single
      recv sized to the receive buffer.
    - No locking: callers must not run two exchanges at the same time.
    """

    def __init__(
        self,
        settings: ConnectionSettings,
        *,
        log_fn=None,
        log_data_lines: bool = False,
        data_log_every: int = 50,
    ):
        self.settings = settings
        self.log_fn = log_fn or logger.debug
        self.log_data_lines = log_data_lines
        self.data_log_every = max(1, int(data_log_every))
        self._data_seen = 0
        self.receive_timeout = settings.receive_timeout
        self.send_timeout = settings.send_timeout
        self.last_error: Exception | None = None
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # A socket that has been connected once is never connected again.
        self._sock_used = False

    @property
    def address(self) -> tuple[str, int]:
        return self.settings.ip_address, self.settings.port

    def is_connected(self) -> bool:
        try:
            self.sock.getpeername()
        except OSError:
            return False
        return True

    def receive_buffer_size(self) -> int:
        if self.settings.receive_buffer_size:
            return int(self.settings.receive_buffer_size)
        return self.sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)

    def _connect_timeout(self) -> float | None:
        timeouts = [t for t in (self.send_timeout, self.receive_timeout) if t is not None]
        return max(timeouts) if timeouts else None

    def connect(self) -> SocketConnectionResult:
        if self.is_connected():
            return SocketConnectionResult.CONNECTED

        if self._sock_used:
            # The device dropped the session without a disconnect() on our side.
            self.reset()

        host, port = self.address
        try:
            if not host:
                raise ConnectionError("No device address configured")
            self.sock.settimeout(self._connect_timeout())
            self._sock_used = True
            self.sock.connect((host, port))
        except TimeoutError as e:
            self.last_error = e
            self.log_fn(f"Connect to {host}:{port} timed out")
            self.reset()
            return SocketConnectionResult.CONNECT_TIMEOUT
        except OSError as e:
            self.last_error = e
            self.log_fn(f"Connect to {host}:{port} failed: {e}")
            self.reset()
            return SocketConnectionResult.CONNECT_ERROR

        self.last_error = None
        self.log_fn(f"Connected to {host}:{port}")
        return SocketConnectionResult.CONNECTED

    def disconnect(self) -> SocketConnectionResult:
        if not self.is_connected():
            return SocketConnectionResult.DISCONNECTED

        try:
            self.sock.close()
            status = SocketConnectionResult.DISCONNECTED
        except TimeoutError as e:
            self.last_error = e
            status = SocketConnectionResult.DISCONNECT_TIMEOUT
        except OSError as e:
            self.last_error = e
            status = SocketConnectionResult.DISCONNECT_ERROR

        self._replace_socket()
        self.log_fn(f"Disconnected from {self.address[0]}:{self.address[1]} ({status.name})")
        return status

    def reset(self) -> None:
        """
        Force the connection back to a new, unconnected socket whatever the
        state of the current one.
        """
        try:
            self.sock.close()
        except OSError as e:
            self.log_fn(f"Error while closing socket: {e}")
        self._replace_socket()

    def _replace_socket(self) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock_used = False
        self.send_timeout = REPLACEMENT_SEND_TIMEOUT

    def send(self, command: bytes) -> None:
        """
        Write a complete telegram. Raises OSError (TimeoutError included) on failure
        and ValueError for bytes that are not one STX...ETX frame.
        """
        if not is_framed_telegram(command):
            raise ValueError(f"Not an STX/ETX framed telegram: {command!r}")
        self.sock.settimeout(self.send_timeout)
        self.log_fn(f"TX -> {command!r}")
        self.sock.sendall(command)

    def receive(self) -> bytes:
        """
        Read one reply buffer. Raises OSError (TimeoutError included) on failure.
        """
        self.sock.settimeout(self.receive_timeout)
        size = self.receive_buffer_size()
        data = self.sock.recv(size)
        if not data:
            raise ConnectionError("Connection closed by the device")

        if self.settings.read_until_terminator:
            buf = bytearray(data)
            while not contains_terminator(buf):
                chunk = self.sock.recv(size)
                if not chunk:
                    raise ConnectionError("Connection closed by the device")
                buf.extend(chunk)
            data = bytes(buf)

        self._log_reply(data)
        return data

    def _log_reply(self, data: bytes) -> None:
        # Logging policy: always log short replies; optionally log some scans
        line = telegram_text(data)
        if CMD.LMD_SCANDATA in line[:32]:
            self._data_seen += 1
            if self.log_data_lines and (self._data_seen % self.data_log_every == 0):
                self.log_fn(f"RX <- {line}")
        else:
            self.log_fn(f"RX <- {line}")

    def execute(self, command: bytes) -> bytes | None:
        """
        Send a telegram and read back one raw reply buffer.

        Returns None when not connected or on any I/O failure; the cause is left
        in `last_error`. Does not retry and does not disconnect on failure.
        """
        self.last_error = None
        if not self.is_connected():
            self.last_error = ConnectionError("Client socket not connected.")
            return None

        try:
            self.send(command)
            return self.receive()
        except OSError as e:
            self.last_error = e
            self.log_fn(f"I/O error: {e!r}")
            return None

    async def connect_async(self) -> SocketConnectionResult:
        return await asyncio.to_thread(self.connect)

    async def disconnect_async(self) -> SocketConnectionResult:
        return await asyncio.to_thread(self.disconnect)

    async def send_async(self, command: bytes) -> None:
        await asyncio.to_thread(self.send, command)

    async def execute_async(self, command: bytes) -> bytes | None:
        return await asyncio.to_thread(self.execute, command)
