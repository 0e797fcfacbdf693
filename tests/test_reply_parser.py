import pytest

from domain.models import DeviceStatus, ScanConfigStatus
from protocol.reply_parser import (
    SCAN_HEADER_FIELDS,
    DecodeFormatError,
    FieldSpec,
    decode_hex_single,
    hex_fixed,
    hex_microseconds_to_seconds,
    hex_to_int,
    parse_device_state_reply,
    parse_device_temperature_reply,
    parse_error_reply,
    parse_fixed_fields,
    parse_login_reply,
    parse_scan_data_reply,
    parse_set_scan_config_reply,
)
from simulated_lms import frame, scan_telegram


# ---------------------------------------------------------------------------
# Field decoders
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "token, expected",
    [("0000803F", 1.0), ("0000D041", 26.0), ("00000000", 0.0), ("000080bf", -1.0)],
)
def test_decode_hex_single(token, expected):
    assert decode_hex_single(token) == expected


@pytest.mark.parametrize("token", ["", "0000803", "0000803G", "0000803F00", " 0000803F", None])
def test_decode_hex_single_rejects_malformed(token):
    with pytest.raises(DecodeFormatError):
        decode_hex_single(token)


def test_hex_to_int_is_signed_32_bit():
    assert hex_to_int("1388") == 5000
    assert hex_to_int("FFF92230") == -450000
    assert hex_to_int("FFFFFFFF") == -1
    assert hex_to_int("7FFFFFFF") == 2147483647


@pytest.mark.parametrize("token", ["", "XYZ", "123456789", "-1"])
def test_hex_to_int_rejects_malformed(token):
    with pytest.raises(DecodeFormatError):
        hex_to_int(token)


def test_fixed_point_and_timer_decoders():
    assert hex_fixed(100)("1388") == 50.0
    assert hex_fixed(10000)("FFF92230") == -45.0
    # Timers are unsigned microseconds truncated to whole seconds.
    assert hex_microseconds_to_seconds("2D8A3C0") == 47
    assert hex_microseconds_to_seconds("FFFFFFFF") == 4294


def test_decode_format_error_is_a_value_error():
    assert issubclass(DecodeFormatError, ValueError)


# ---------------------------------------------------------------------------
# Generic field dispatch
# ---------------------------------------------------------------------------
def test_parse_fixed_fields_joins_paired_fields():
    specs = {1: FieldSpec("kind"), 2: FieldSpec("status"), 3: FieldSpec("status", join=True)}
    assert parse_fixed_fields(["sRA", "0", "1"], specs) == {"kind": "sRA", "status": "0-1"}


def test_parse_fixed_fields_skip_rule_does_not_consume_tokens():
    specs = {
        1: FieldSpec("count", hex_to_int, skip_if=lambda c: c <= 0, skip=2),
        2: FieldSpec("a"),
        3: FieldSpec("b"),
        4: FieldSpec("c"),
    }
    assert parse_fixed_fields(["0", "X"], specs) == {"count": 0, "c": "X"}
    assert parse_fixed_fields(["1", "X", "Y", "Z"], specs) == {"count": 1, "a": "X", "b": "Y", "c": "Z"}


def test_parse_fixed_fields_stops_on_unexpected_command_type():
    specs = {1: FieldSpec("command_type"), 2: FieldSpec("command")}
    record = parse_fixed_fields(["sAN", "LMCstartmeas"], specs, expected_command_type="sRA")
    assert record == {"command_type": "sAN"}


def test_parse_fixed_fields_short_frame():
    specs = {1: FieldSpec("command_type"), 2: FieldSpec("command"), 3: FieldSpec("value")}
    assert parse_fixed_fields(b"\x02sRA SCdevicestate\x03", specs) == {
        "command_type": "sRA",
        "command": "SCdevicestate",
    }
    with pytest.raises(DecodeFormatError):
        parse_fixed_fields(b"\x02sRA SCdevicestate\x03", specs, strict=True)


def test_scan_header_has_28_ordinals():
    assert sorted(SCAN_HEADER_FIELDS) == list(range(1, 29))


# ---------------------------------------------------------------------------
# LMDscandata
# ---------------------------------------------------------------------------
def test_scan_header_without_encoder():
    record = parse_scan_data_reply(scan_telegram())

    assert record["command_type"] == "sRA"
    assert record["command"] == "LMDscandata"
    assert record["version_number"] == 1
    assert record["device_number"] == 1
    assert record["serial_number"] == 0x89A27F
    assert record["device_status"] == "0-0"
    assert record["telegram_counter"] == 0xBE5
    assert record["scan_counter"] == 0xBE7
    assert record["time_since_startup"] == 47
    assert record["time_of_transmission"] == 47
    assert record["status_of_digital_inputs"] == "0-0"
    assert record["status_of_digital_outputs"] == "0-0"
    assert record["reserved"] == 0
    assert record["scan_frequency"] == 50.0
    assert record["measurement_frequency"] == 36.0
    assert record["encoder_count"] == 0
    assert "encoder_position" not in record
    assert "encoder_speed" not in record
    assert record["channel_count"] == 1
    assert record["content"] == "DIST1"
    assert record["scale_factor"] == "3F800000"
    assert record["scale_factor_offset"] == "00000000"
    assert record["start_angle"] == -45.0
    assert record["angular_step"] == 0.5
    assert record["point_count"] == 4


def test_scan_header_with_encoder():
    record = parse_scan_data_reply(scan_telegram(encoder=(20000, 100)))
    assert record["encoder_count"] == 1
    assert record["encoder_position"] == 20000
    assert record["encoder_speed"] == 100
    assert record["channel_count"] == 1
    assert record["content"] == "DIST1"
    assert record["distances"] == pytest.approx([0.5, 3.0, 1.0, 2.5])


def test_scan_reads_exactly_point_count_samples():
    record = parse_scan_data_reply(scan_telegram([1, 20, 300, 4000, 50000]))
    assert record["point_count"] == 5
    assert record["distances"] == pytest.approx([0.001, 0.02, 0.3, 4.0, 50.0])


def test_scan_with_no_samples():
    record = parse_scan_data_reply(scan_telegram([]))
    assert record["point_count"] == 0
    assert record["distances"] == []


def test_scan_ignores_zero_padding_after_frame():
    raw = scan_telegram() + b"\x00" * 8192
    assert parse_scan_data_reply(raw)["distances"] == pytest.approx([0.5, 3.0, 1.0, 2.5])


def test_scan_with_fewer_samples_than_declared_raises():
    raw = frame(
        "sRA LMDscandata 1 1 89A27F 0 0 BE5 BE7 2D8A3C0 2D8E4C0 0 0 0 0 0 1388 168 0 "
        "1 DIST1 3F800000 00000000 FFF92230 1388 5 1F4 BB8"
    )
    with pytest.raises(DecodeFormatError):
        parse_scan_data_reply(raw)


def test_scan_point_count_is_unsigned():
    raw = scan_telegram([500, 3000], point_count=0xFFFFFFFF)
    with pytest.raises(DecodeFormatError):
        parse_scan_data_reply(raw)


def test_scan_with_truncated_header_raises():
    with pytest.raises(DecodeFormatError):
        parse_scan_data_reply(frame("sRA LMDscandata 1 1 89A27F 0 0 BE5"))


def test_scan_with_malformed_hex_raises():
    raw = scan_telegram().replace(b"BE7", b"BZ7")
    with pytest.raises(DecodeFormatError):
        parse_scan_data_reply(raw)


def test_scan_reply_of_another_type_is_partial():
    record = parse_scan_data_reply(frame("sAN LMCstartmeas 0"))
    assert record == {"command_type": "sAN"}


# ---------------------------------------------------------------------------
# Small replies
# ---------------------------------------------------------------------------
def test_login_reply():
    assert parse_login_reply(frame("sAN SetAccessMode 1")) == {
        "command_type": "sAN",
        "command": "SetAccessMode",
        "changed_user_level": True,
    }
    assert parse_login_reply(frame("sAN SetAccessMode 0"))["changed_user_level"] is False


def test_device_state_reply():
    record = parse_device_state_reply(frame("sRA SCdevicestate 1"))
    assert record["status"] is DeviceStatus.READY
    assert parse_device_state_reply(frame("sRA SCdevicestate 2"))["status"] is DeviceStatus.ERROR


def test_device_state_reply_with_unknown_status_raises():
    with pytest.raises(DecodeFormatError):
        parse_device_state_reply(frame("sRA SCdevicestate 7"))


def test_device_temperature_reply():
    record = parse_device_temperature_reply(frame("sRA OPcurtmpdev 0000D041"))
    assert record == {"command_type": "sRA", "command": "OPcurtmpdev", "temperature": 26.0}


def test_set_scan_config_reply():
    record = parse_set_scan_config_reply(frame("sAN mLMPsetscancfg 0 1388 1 1388 FFF92230 225510"))
    assert record["status_code"] is ScanConfigStatus.NO_ERROR
    assert record["scan_frequency"] == 5000.0
    assert record["number_of_active_sectors"] == 1.0
    assert record["angular_resolution"] == 5000.0
    assert record["start_angle"] == -450000.0
    assert record["stop_angle"] == 2250000.0


def test_set_scan_config_reply_with_status_only():
    record = parse_set_scan_config_reply(frame("sAN mLMPsetscancfg 1"))
    assert record["status_code"] is ScanConfigStatus.FREQUENCY_ERROR
    assert "scan_frequency" not in record


def test_error_reply():
    assert parse_error_reply(frame("sFA 0005")) == "0005"
    assert parse_error_reply(frame("sFA")) == ""
    assert parse_error_reply(frame("sRA SCdevicestate 1")) is None
    assert parse_error_reply(b"") is None
