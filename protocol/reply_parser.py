import re
import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from domain.models import DeviceStatus, ScanConfigStatus
import lms_command_ids as CMD
from protocol.command_registry import is_error_answer
from protocol.frame_codec import iter_fields


HEX_RE = re.compile(r"[0-9A-Fa-f]{1,8}")
HEX_SINGLE_RE = re.compile(r"[0-9A-Fa-f]{8}")

SCAN_HEADER_FIELD_COUNT = 28


class DecodeFormatError(ValueError):
    """A telegram field is not in the expected hex/decimal format."""


def decode_hex_single(hex_value: str) -> float:
    """
    Decode 8 hex characters as an IEEE-754 single.

    Each pair of characters is one byte; the 4 bytes are reversed and read as a
    big-endian float, e.g. "0000803F" -> 3F 80 00 00 -> 1.0.
    """
    if not isinstance(hex_value, str) or HEX_SINGLE_RE.fullmatch(hex_value) is None:
        raise DecodeFormatError(
            f"The supplied hex value is either empty or in an incorrect format. "
            f"Use the following format: 00000000 (got {hex_value!r})"
        )
    raw = bytes.fromhex(hex_value)
    return struct.unpack(">f", raw[::-1])[0]


def hex_to_int(token: str) -> int:
    """Hex field as a 32-bit two's complement integer."""
    if HEX_RE.fullmatch(token or "") is None:
        raise DecodeFormatError(f"Invalid hex field: {token!r}")
    value = int(token, 16)
    if value >= 0x80000000:
        value -= 1 << 32
    return value


def hex_to_uint(token: str) -> int:
    if HEX_RE.fullmatch(token or "") is None:
        raise DecodeFormatError(f"Invalid hex field: {token!r}")
    return int(token, 16)


def decimal_to_int(token: str) -> int:
    try:
        return int(token)
    except (TypeError, ValueError):
        raise DecodeFormatError(f"Invalid decimal field: {token!r}") from None


def decimal_enum(enum_cls) -> Callable[[str], Any]:
    def decode(token: str):
        value = decimal_to_int(token)
        try:
            return enum_cls(value)
        except ValueError:
            raise DecodeFormatError(f"Unknown {enum_cls.__name__} value: {value}") from None
    return decode


def hex_fixed(divisor: float) -> Callable[[str], float]:
    def decode(token: str) -> float:
        return hex_to_int(token) / divisor
    return decode


def hex_microseconds_to_seconds(token: str) -> int:
    return hex_to_uint(token) // 1_000_000


def text(token: str) -> str:
    return token


@dataclass(frozen=True)
class FieldSpec:
    name: str
    decode: Callable[[str], Any] = text
    # Append to the existing value of `name` as "<previous>-<this>".
    join: bool = False
    # When skip_if(value) holds, the next `skip` ordinals are treated as consumed.
    skip_if: Callable[[Any], bool] | None = None
    skip: int = 0


SCAN_HEADER_FIELDS: dict[int, FieldSpec] = {
    1: FieldSpec("command_type"),
    2: FieldSpec("command"),
    3: FieldSpec("version_number", hex_to_int),
    4: FieldSpec("device_number", hex_to_int),
    5: FieldSpec("serial_number", hex_to_int),
    6: FieldSpec("device_status"),
    7: FieldSpec("device_status", join=True),
    8: FieldSpec("telegram_counter", hex_to_int),
    9: FieldSpec("scan_counter", hex_to_int),
    10: FieldSpec("time_since_startup", hex_microseconds_to_seconds),
    11: FieldSpec("time_of_transmission", hex_microseconds_to_seconds),
    12: FieldSpec("status_of_digital_inputs"),
    13: FieldSpec("status_of_digital_inputs", join=True),
    14: FieldSpec("status_of_digital_outputs"),
    15: FieldSpec("status_of_digital_outputs", join=True),
    16: FieldSpec("reserved", hex_to_int),
    17: FieldSpec("scan_frequency", hex_fixed(100)),
    18: FieldSpec("measurement_frequency", hex_fixed(10)),
    # The device omits position and speed when no encoder is fitted.
    19: FieldSpec("encoder_count", hex_to_int, skip_if=lambda count: count <= 0, skip=2),
    20: FieldSpec("encoder_position", hex_to_int),
    21: FieldSpec("encoder_speed", hex_to_int),
    22: FieldSpec("channel_count", hex_to_int),
    23: FieldSpec("content"),
    24: FieldSpec("scale_factor"),
    25: FieldSpec("scale_factor_offset"),
    26: FieldSpec("start_angle", hex_fixed(10000)),
    27: FieldSpec("angular_step", hex_fixed(10000)),
    28: FieldSpec("point_count", hex_to_uint),
}

LOGIN_FIELDS: dict[int, FieldSpec] = {
    1: FieldSpec("command_type"),
    2: FieldSpec("command"),
    3: FieldSpec("changed_user_level", lambda token: token == "1"),
}

DEVICE_STATE_FIELDS: dict[int, FieldSpec] = {
    1: FieldSpec("command_type"),
    2: FieldSpec("command"),
    3: FieldSpec("status", decimal_enum(DeviceStatus)),
}

DEVICE_TEMPERATURE_FIELDS: dict[int, FieldSpec] = {
    1: FieldSpec("command_type"),
    2: FieldSpec("command"),
    3: FieldSpec("temperature", decode_hex_single),
}

SET_SCAN_CONFIG_FIELDS: dict[int, FieldSpec] = {
    1: FieldSpec("command_type"),
    2: FieldSpec("command"),
    3: FieldSpec("status_code", decimal_enum(ScanConfigStatus)),
    4: FieldSpec("scan_frequency", lambda token: float(hex_to_int(token))),
    5: FieldSpec("number_of_active_sectors", lambda token: float(hex_to_int(token))),
    6: FieldSpec("angular_resolution", lambda token: float(hex_to_int(token))),
    7: FieldSpec("start_angle", lambda token: float(hex_to_int(token))),
    8: FieldSpec("stop_angle", lambda token: float(hex_to_int(token))),
}


def parse_fixed_fields(
    raw: bytes | Iterable[str],
    field_specs: dict[int, FieldSpec],
    *,
    field_count: int | None = None,
    expected_command_type: str | None = None,
    strict: bool = False,
) -> dict:
    """
    Dispatch the space-delimited fields of a telegram by ordinal position.

    Ordinals start at 1 (the command type). Parsing stops after `field_count`
    ordinals, at the end of the frame, or right after the command type when
    it differs from `expected_command_type`; in that last case the partially
    filled record is returned and the caller must check "command_type".

    With strict=True a frame that ends before `field_count` ordinals raises
    DecodeFormatError.
    """
    fields = iter_fields(raw) if isinstance(raw, (bytes, bytearray)) else iter(raw)
    last = field_count if field_count is not None else max(field_specs)
    record: dict = {}
    ordinal = 0

    while ordinal < last:
        try:
            token = next(fields)
        except StopIteration:
            if strict:
                raise DecodeFormatError(
                    f"Telegram truncated after {ordinal} of {last} fields"
                ) from None
            break

        ordinal += 1
        spec = field_specs.get(ordinal)
        if spec is not None:
            value = spec.decode(token)
            if spec.join and record.get(spec.name) is not None:
                record[spec.name] = f"{record[spec.name]}-{value}"
            else:
                record[spec.name] = value
            if spec.skip_if is not None and spec.skip_if(value):
                ordinal += spec.skip

        if ordinal == 1 and expected_command_type is not None and token != expected_command_type:
            break

    return record


def parse_scan_data_reply(raw: bytes) -> dict:
    """
    Parse an LMDscandata answer.

    Format: <STX>sRA LMDscandata <27 header fields> <N range samples> ...<ETX>
    The declared point count N decides exactly how many samples are read; each
    sample is a hex value in millimetres converted to metres.
    """
    fields: Iterator[str] = iter_fields(raw)
    record = parse_fixed_fields(
        fields,
        SCAN_HEADER_FIELDS,
        field_count=SCAN_HEADER_FIELD_COUNT,
        expected_command_type=CMD.READ_ANSWER,
        strict=True,
    )
    if record.get("command_type") != CMD.READ_ANSWER:
        return record

    point_count = record["point_count"]
    distances: list[float] = []
    for token in fields:
        if len(distances) >= point_count:
            break
        distances.append(hex_to_int(token) / 1000)

    if len(distances) != point_count:
        raise DecodeFormatError(
            f"Expected {point_count} range samples, telegram holds {len(distances)}"
        )

    record["distances"] = distances
    return record


def parse_login_reply(raw: bytes) -> dict:
    """
    Parse a SetAccessMode answer like "sAN SetAccessMode 1".
    """
    return parse_fixed_fields(raw, LOGIN_FIELDS)


def parse_device_state_reply(raw: bytes) -> dict:
    """
    Parse "sRA SCdevicestate S" where S is 0 (busy), 1 (ready) or 2 (error).
    """
    return parse_fixed_fields(raw, DEVICE_STATE_FIELDS)


def parse_device_temperature_reply(raw: bytes) -> dict:
    return parse_fixed_fields(raw, DEVICE_TEMPERATURE_FIELDS)


def parse_set_scan_config_reply(raw: bytes) -> dict:
    """
    Parse "sAN mLMPsetscancfg STATUS FREQ SECTORS RES START STOP".
    """
    return parse_fixed_fields(raw, SET_SCAN_CONFIG_FIELDS)


def parse_error_reply(raw: bytes) -> str | None:
    """
    Return the error code of an "sFA CODE" answer, or None for any other telegram.
    """
    fields = list(iter_fields(raw))
    if not fields or not is_error_answer(fields[0]):
        return None
    return fields[1] if len(fields) > 1 else ""
