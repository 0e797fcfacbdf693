import csv
from datetime import datetime

import lms_command_ids as CMD
from domain.models import AngularResolution, ScanFrequency, SocketConnectionResult, UserLevel
from domain.value_mapper import map_scan_values
from lms_driver import LMS1xx
from transport.tcp_interface import DEFAULT_PORT, DEFAULT_TIMEOUT

# ---------------------------------------------------------------------------
# Simple console logger
# ---------------------------------------------------------------------------
def log(msg: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)

FREQUENCIES = {
    "25": ScanFrequency.TWENTY_FIVE_HERTZ,
    "50": ScanFrequency.FIFTY_HERTZ,
}

RESOLUTIONS = {
    "0.25": AngularResolution.ZERO_POINT_TWENTY_FIVE_DEGREES,
    "0.5": AngularResolution.ZERO_POINT_FIFTY_DEGREES,
}

LEVELS = {level.name.lower(): level for level in UserLevel}

# ---------------------------------------------------------------------------
# Optional device setup before the scan cycle
# ---------------------------------------------------------------------------
def configure_device(scanner: LMS1xx, level: UserLevel | None, frequency, resolution) -> bool:
    """
    Reads device state and temperature, then logs in and applies the scan
    configuration when asked to. Returns False if any step failed.
    """
    if scanner.connect() != SocketConnectionResult.CONNECTED:
        log(f"Cannot connect to {scanner.ip_address}:{scanner.port}")
        return False

    try:
        state = scanner.read_device_state()
        if state.is_error:
            log(f"Device state unavailable: {state.cause}")
        else:
            log(f"Device state: {state.status.name}")

        temperature = scanner.read_device_temperature()
        if temperature.is_error:
            log(f"Device temperature unavailable: {temperature.cause}")
        else:
            log(f"Device temperature: {temperature.temperature:.1f} C")

        if level is not None:
            login = scanner.login(level)
            if login.is_error or not login.changed_user_level:
                log(f"Login as {level.name} failed: {login.cause or login.raw_data_string}")
                return False
            log(f"Logged in as {level.name}")

        if frequency is not None and resolution is not None:
            config = scanner.set_scan_configuration(frequency, resolution)
            if config.is_error:
                log(f"Scan configuration failed: {config.cause}")
                return False
            log(f"Scan configuration status: {config.status_code.name}")
            if config.status_code.value != 0:
                return False
        return True
    finally:
        scanner.disconnect()

# ---------------------------------------------------------------------------
# Main routine
# ---------------------------------------------------------------------------
def main():
    import argparse

    ap = argparse.ArgumentParser(description="Read one scan from a SICK LMS1xx")
    ap.add_argument("--host", required=True, help="Scanner IP address (e.g. 192.168.0.1)")
    ap.add_argument("--port", type=int, default=DEFAULT_PORT)
    ap.add_argument("--receive-timeout", type=float, default=DEFAULT_TIMEOUT, help="Seconds")
    ap.add_argument("--send-timeout", type=float, default=DEFAULT_TIMEOUT, help="Seconds")
    ap.add_argument("--login", choices=sorted(LEVELS), help="Log in before configuring")
    ap.add_argument("--frequency", choices=sorted(FREQUENCIES), help="Scan frequency in Hz (needs --login)")
    ap.add_argument("--resolution", choices=sorted(RESOLUTIONS), help="Angular resolution in degrees")
    ap.add_argument("--read-until-etx", action="store_true", help="Keep reading until the frame terminator")
    ap.add_argument("--output", default="scan.csv", help="CSV file for angle/range/x/y")
    ap.add_argument("--log-data", action="store_true", help="Log some scan telegrams too (can be spammy)")
    ap.add_argument("--log-data-every", type=int, default=50, help="If --log-data, log every Nth scan telegram")
    args = ap.parse_args()

    if (args.frequency is None) != (args.resolution is None):
        ap.error("--frequency and --resolution must be given together")

    scanner = LMS1xx(
        args.host,
        args.port,
        args.receive_timeout,
        args.send_timeout,
        read_until_terminator=args.read_until_etx,
        log_fn=log,
        log_data_lines=args.log_data,
        data_log_every=args.log_data_every,
    )

    level = LEVELS[args.login] if args.login else None
    frequency = FREQUENCIES.get(args.frequency)
    resolution = RESOLUTIONS.get(args.resolution)
    if not configure_device(scanner, level, frequency, resolution):
        return 1

    log("Starting scan cycle")
    scan = scanner.full_scan_cycle()
    if scan.is_error:
        log(f"Scan failed ({scan.error_kind.value}): {scan.cause}")
        return 1
    if scan.command_type != CMD.READ_ANSWER:
        log(f"Unexpected reply: {scan.raw_data_string[:60]!r}")
        return 1

    values = map_scan_values(scan)
    log(
        f"Scan #{scan.scan_counter}: {scan.point_count} points, "
        f"{scan.start_angle:.2f} deg step {scan.angular_step:.4f} deg, "
        f"{scan.scan_frequency:.2f} Hz"
    )

    with open(args.output, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["angle_deg", "distance_m", "x_m", "y_m"])
        writer.writerows(
            zip(values["angle_deg"], values["distance_m"], values["x_m"], values["y_m"])
        )

    log(f"Saved {args.output}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
