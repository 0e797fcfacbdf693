from dataclasses import replace

from domain.models import (
    ErrorKind,
    NetworkStreamResult,
    ScanDataResult,
    SocketConnectionResult,
)


# LMDscandata requests issued after LMCstartmeas; only the last reply is kept.
# The first read after a start does not return the scan (the start
# acknowledgement is still waiting on the socket), so the scan is read twice.
READS_AFTER_START = 2

_CONNECT_FAILURE_KINDS = {
    SocketConnectionResult.CONNECT_TIMEOUT: ErrorKind.CONNECT_TIMEOUT,
    SocketConnectionResult.CONNECT_ERROR: ErrorKind.CONNECT_ERROR,
}

_STREAM_FAILURE_KINDS = {
    NetworkStreamResult.TIMEOUT: ErrorKind.IO_TIMEOUT,
    NetworkStreamResult.ERROR: ErrorKind.IO_ERROR,
    NetworkStreamResult.CLIENT_NOT_CONNECTED: ErrorKind.NOT_CONNECTED,
}


def _not_connected(status: SocketConnectionResult) -> ScanDataResult:
    kind = _CONNECT_FAILURE_KINDS.get(status, ErrorKind.NOT_CONNECTED)
    return ScanDataResult.failure(kind, ConnectionError(f"Client socket not connected ({status.name})."))


def _not_started(status: NetworkStreamResult) -> ScanDataResult:
    kind = _STREAM_FAILURE_KINDS.get(status, ErrorKind.IO_ERROR)
    return ScanDataResult.failure(kind, RuntimeError(f"Network stream not started ({status.name})."))


def _finish(driver, scan: ScanDataResult, stop_status: NetworkStreamResult) -> ScanDataResult:
    if stop_status == NetworkStreamResult.STOPPED:
        return scan

    driver.log_fn(f"Network stream improperly stopped ({stop_status.name})")
    if scan.is_error:
        # The read failure came first; keep it.
        return scan
    return replace(
        scan,
        is_error=True,
        error_kind=_STREAM_FAILURE_KINDS.get(stop_status, ErrorKind.IO_ERROR),
        error=RuntimeError(f"Network stream improperly stopped ({stop_status.name})."),
    )


def full_scan_cycle(driver, *, reads_after_start: int = READS_AFTER_START) -> ScanDataResult:
    """
    Run connect -> start -> read scan data -> stop -> disconnect.

    Returns the scan of the last read. The first failure is returned; stop and
    disconnect are still attempted once the scanner was started, and every
    path ends disconnected.
    """
    try:
        connection = driver.connect()
        if connection != SocketConnectionResult.CONNECTED:
            return _not_connected(connection)

        stream = driver.start()
        if stream != NetworkStreamResult.STARTED:
            return _not_started(stream)

        scan = None
        for _ in range(max(1, reads_after_start)):
            scan = driver.read_scan_data()
            if scan.is_error:
                break

        return _finish(driver, scan, driver.stop())
    finally:
        driver.disconnect()


async def full_scan_cycle_async(driver, *, reads_after_start: int = READS_AFTER_START) -> ScanDataResult:
    try:
        connection = await driver.connect_async()
        if connection != SocketConnectionResult.CONNECTED:
            return _not_connected(connection)

        stream = await driver.start_async()
        if stream != NetworkStreamResult.STARTED:
            return _not_started(stream)

        scan = None
        for _ in range(max(1, reads_after_start)):
            scan = await driver.read_scan_data_async()
            if scan.is_error:
                break

        return _finish(driver, scan, await driver.stop_async())
    finally:
        await driver.disconnect_async()
