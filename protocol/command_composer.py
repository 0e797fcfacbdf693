from domain.models import AngularResolution, ScanFrequency, UserLevel
import lms_command_ids as CMD
from protocol.frame_codec import STX, build_command, compose_frame


# Template bytes include STX and the trailing space before the substitutions.
LOGIN_TEMPLATE = STX + f"{CMD.METHOD_BY_NAME} {CMD.SET_ACCESS_MODE} ".encode("ascii")
SET_SCAN_CFG_TEMPLATE = STX + f"{CMD.METHOD_BY_NAME} {CMD.SET_SCAN_CFG} ".encode("ascii")

# Level code (with its trailing space) and the password bound to that level.
LOGIN_CREDENTIALS: dict[UserLevel, tuple[bytes, bytes]] = {
    UserLevel.MAINTENANCE: (b"02 ", b"B21ACE26"),
    UserLevel.AUTHORIZED_CLIENT: (b"03 ", b"F4724744"),
    UserLevel.SERVICE: (b"04 ", b"81BE23AA"),
}

SCAN_FREQUENCY_ARGS: dict[ScanFrequency, bytes] = {
    ScanFrequency.TWENTY_FIVE_HERTZ: b"+2500 ",
    ScanFrequency.FIFTY_HERTZ: b"+5000 ",
}

ANGULAR_RESOLUTION_ARGS: dict[AngularResolution, bytes] = {
    AngularResolution.ZERO_POINT_TWENTY_FIVE_DEGREES: b"+2500 ",
    AngularResolution.ZERO_POINT_FIFTY_DEGREES: b"+5000 ",
}

# The LMS1xx always reports a single active sector.
ACTIVE_SECTORS_ARG = b"+1 "
# Scan area is fixed to -45 deg .. +225 deg (1/10000 deg).
START_ANGLE_ARG = b"-450000 "
STOP_ANGLE_ARG = b"+2250000"


def compose_start_command() -> bytes:
    return compose_frame(CMD.METHOD_BY_NAME, CMD.LMC_START_MEAS)


def compose_stop_command() -> bytes:
    return compose_frame(CMD.METHOD_BY_NAME, CMD.LMC_STOP_MEAS)


def compose_set_access_mode_command() -> bytes:
    return compose_frame(CMD.METHOD_ANSWER, CMD.SET_ACCESS_MODE, "1")


def compose_scan_data_command() -> bytes:
    return compose_frame(CMD.READ_BY_NAME, CMD.LMD_SCANDATA)


def compose_device_state_command() -> bytes:
    return compose_frame(CMD.READ_BY_NAME, CMD.DEVICE_STATE)


def compose_device_temperature_command() -> bytes:
    return compose_frame(CMD.READ_BY_NAME, CMD.DEVICE_TEMPERATURE)


def compose_reboot_command() -> bytes:
    return compose_frame(CMD.METHOD_BY_NAME, CMD.REBOOT)


def compose_login_command(level: UserLevel) -> bytes:
    """
    Compose a SetAccessMode login telegram:
      <STX>sMN SetAccessMode LL PASSWORD<ETX>
    """
    level_code, password = LOGIN_CREDENTIALS[UserLevel(level)]
    return build_command(LOGIN_TEMPLATE, level_code, password)


def compose_set_scan_config_command(
    frequency: ScanFrequency,
    resolution: AngularResolution,
) -> bytes:
    """
    Compose a mLMPsetscancfg telegram:
      <STX>sMN mLMPsetscancfg FREQ +1 RES START STOP<ETX>
    """
    return build_command(
        SET_SCAN_CFG_TEMPLATE,
        SCAN_FREQUENCY_ARGS[ScanFrequency(frequency)],
        ACTIVE_SECTORS_ARG,
        ANGULAR_RESOLUTION_ARGS[AngularResolution(resolution)],
        START_ANGLE_ARG,
        STOP_ANGLE_ARG,
    )
