"""Turn raw text tokens into typed values according to a command definition."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Sequence

from .command_spec import CREDENTIAL_USER_FIELD, CommandDefinition, FieldSpec, TypeTag
from .errors import InsufficientArgumentsError, InvalidFieldValueError, NoActiveCredentialError


def _split_list(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def as_number_list(raw: str) -> List[Any]:
    out = []
    for part in _split_list(raw):
        try:
            out.append(int(part))
        except ValueError:
            out.append(float(part))
    return out


def as_string_list(raw: str) -> List[str]:
    return _split_list(raw)


def as_big_integer(raw: str) -> int:
    text = raw.strip()
    # int() also accepts "1_000"; amounts must be plain digits.
    if not text.lstrip("+-").isdigit():
        raise ValueError("not a decimal integer")
    return int(text, 10)


def as_timestamp(raw: str) -> datetime:
    return datetime.fromtimestamp(float(raw), tz=timezone.utc)


def read_json_file(raw: str) -> Any:
    path = Path(raw).expanduser()
    with open(path, encoding="utf-8") as f:
        return json.load(f)


_CONVERTERS = {
    TypeTag.PLAIN_TEXT: lambda raw: raw,
    TypeTag.NUMBER_LIST: as_number_list,
    TypeTag.STRING_LIST: as_string_list,
    TypeTag.BIG_INTEGER: as_big_integer,
    TypeTag.TIMESTAMP: as_timestamp,
    TypeTag.FILE_REFERENCE: read_json_file,
}


def sanitize_value(spec: FieldSpec, raw: str) -> Any:
    """Coerce one raw token for ``spec``; raises InvalidFieldValueError."""
    converter = _CONVERTERS[spec.type]
    try:
        return converter(raw)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidFieldValueError(spec.name, raw, str(e))


def validate(
    definition: CommandDefinition,
    raw_tokens: Sequence[str],
    credential=None,
) -> List[Any]:
    """Return one sanitized value per declared field, in declaration order.

    Credential fields are filled from ``credential`` (anything with
    ``username``/``password`` attributes) without consuming a token. An empty
    token counts as absent and does not advance the cursor, so an empty
    optional argument looks exactly like a missing one.
    """
    required = definition.required_field_count
    if len(raw_tokens) < required:
        raise InsufficientArgumentsError(required, len(raw_tokens))

    values: List[Any] = []
    cursor = 0
    for spec in definition.fields:
        if definition.is_credential_field(spec):
            if credential is None:
                raise NoActiveCredentialError()
            if spec.name == CREDENTIAL_USER_FIELD:
                values.append(credential.username)
            else:
                values.append(credential.password)
        elif cursor < len(raw_tokens) and raw_tokens[cursor]:
            values.append(sanitize_value(spec, raw_tokens[cursor]))
            cursor += 1
        else:
            values.append(None)

    return values


def to_wire(value: Any) -> Any:
    """Convert a sanitized value into something a JSON-RPC request can carry."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, list):
        return [to_wire(v) for v in value]
    return value


def build_params(definition: CommandDefinition, values: Sequence[Any]) -> dict:
    """Map positional sanitized values onto field names, dropping absent ones."""
    params: dict = {}
    for spec, value in zip(definition.fields, values):
        if value is None:
            continue
        params[spec.name] = to_wire(value)
    return params
