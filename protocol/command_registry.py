import lms_command_ids as CMD
from protocol.frame_codec import iter_fields


def _is_command_type(value: str) -> bool:
    if not isinstance(value, str):
        return False
    v = value.strip()
    return len(v) == 3 and v.startswith("s") and v.isalpha()


def _build_names(predicate) -> dict[str, str]:
    names: dict[str, str] = {}
    for name, value in vars(CMD).items():
        if name.startswith("_") or not isinstance(value, str):
            continue
        if predicate(value):
            names[value.strip()] = name
    return names


COMMAND_TYPE_BY_TOKEN = _build_names(_is_command_type)
COMMAND_NAME_BY_TOKEN = _build_names(lambda value: not _is_command_type(value))

ANSWER_TYPE_BY_REQUEST = {
    CMD.READ_BY_NAME: CMD.READ_ANSWER,
    CMD.WRITE_BY_NAME: CMD.WRITE_ANSWER,
    CMD.METHOD_BY_NAME: CMD.METHOD_ANSWER,
}


def command_type_name(token: str) -> str:
    return COMMAND_TYPE_BY_TOKEN.get((token or "").strip(), "UNKNOWN")


def command_name(token: str) -> str:
    return COMMAND_NAME_BY_TOKEN.get((token or "").strip(), "UNKNOWN")


def expected_answer_type(request_type: str) -> str | None:
    return ANSWER_TYPE_BY_REQUEST.get((request_type or "").strip())


def is_error_answer(command_type: str | None) -> bool:
    return (command_type or "").strip() == CMD.ERROR_ANSWER


def describe_telegram(raw: bytes | None) -> str:
    """
    Readable "TYPE NAME" label of a telegram, e.g. "READ_ANSWER LMD_SCANDATA".
    """
    fields = iter_fields(raw or b"")
    command_type = next(fields, "")
    if is_error_answer(command_type):
        return f"{command_type_name(command_type)} {next(fields, '')}".strip()
    return f"{command_type_name(command_type)} {command_name(next(fields, ''))}"


def answers_request(request: bytes, reply: bytes) -> bool:
    """
    True if `reply` carries the answer type and command name `request` asks for.
    Requests without a defined answer type (sAN, sFA) match any reply.
    """
    request_fields = iter_fields(request)
    expected = expected_answer_type(next(request_fields, ""))
    if expected is None:
        return True
    reply_fields = iter_fields(reply)
    return next(reply_fields, "") == expected and next(reply_fields, "") == next(request_fields, "")
