from typing import Iterator


STX = b"\x02"
ETX = b"\x03"
FIELD_SEPARATOR = b" "


def is_framed_telegram(packet: bytes) -> bool:
    """
    Returns True only for packets framed as "<STX>...<ETX>".
    """
    return (
        isinstance(packet, (bytes, bytearray))
        and len(packet) >= 2
        and packet[:1] == STX
        and packet[-1:] == ETX
    )


def build_command(template: bytes, *substitutions: bytes) -> bytes:
    """
    Concatenate a fixed template (STX included) with the chosen substitution
    groups and append the frame terminator.
    """
    return bytes(template) + b"".join(substitutions) + ETX


def compose_frame(command_type: str, command_name: str, *arguments: str) -> bytes:
    """
    Compose a framed telegram according to:
      <STX>TTT NAME ARG ...<ETX>
    """
    parts = [command_type, command_name, *arguments]
    return build_command(STX + " ".join(parts).encode("ascii"))


def find_frame(raw: bytes) -> tuple[int, int]:
    """
    Locate the first telegram inside a raw receive buffer.

    Returns (body_start, body_end) so that raw[body_start:body_end] is the
    telegram body without STX/ETX. When no ETX is present the body ends where
    the trailing zero padding of the receive buffer starts.
    """
    stx = raw.find(STX)
    start = stx + 1 if stx != -1 else 0
    end = raw.find(ETX, start)
    if end == -1:
        end = len(raw.rstrip(b"\x00"))
    return start, max(start, end)


def extract_telegram(raw: bytes) -> bytes:
    start, end = find_frame(raw)
    return bytes(raw[start:end])


def contains_terminator(raw: bytes) -> bool:
    stx = raw.find(STX)
    return raw.find(ETX, stx + 1 if stx != -1 else 0) != -1


def iter_fields(raw: bytes) -> Iterator[str]:
    """
    Yield the space-delimited fields of the first telegram in `raw`.

    Scanning starts one byte past the start marker and stops at the frame
    terminator; nothing after ETX (padding, a second telegram) is looked at.
    """
    body = extract_telegram(raw)
    field = bytearray()
    for byte in body:
        if byte == FIELD_SEPARATOR[0]:
            yield field.decode("ascii", errors="replace")
            field.clear()
        else:
            field.append(byte)
    if field or body.endswith(FIELD_SEPARATOR):
        yield field.decode("ascii", errors="replace")


def telegram_text(raw: bytes | None) -> str:
    if not raw:
        return ""
    return extract_telegram(raw).decode("ascii", errors="replace")
