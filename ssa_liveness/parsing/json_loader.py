from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..errors import MalformedInputError
from ..intermediate_representation.ir import (
    BasicBlock,
    Function,
    Instruction,
    Module,
    Name,
    Operand,
    Param,
    Type,
)


def _field(obj: Any, key: str, path: str) -> Any:
    """Fetch a required key from a JSON object, naming the path when absent."""
    if not isinstance(obj, dict):
        raise MalformedInputError(f"{path}: expected an object", subject=path)
    if key not in obj:
        raise MalformedInputError(
            f"{path}.{key}: required field is missing", subject=f"{path}.{key}"
        )
    return obj[key]


def _list(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise MalformedInputError(f"{path}: expected a list", subject=path)
    return value


def _int(value: Any, path: str) -> int:
    # bool is an int subclass; reject it so `true` never decodes as opcode 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedInputError(f"{path}: expected an integer", subject=path)
    return value


def _str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise MalformedInputError(f"{path}: expected a string", subject=path)
    return value


def _name(value: Any, path: str) -> Name:
    """Decode the untagged string-or-number Name encoding."""
    if isinstance(value, str):
        return Name.symbol(value)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return Name.number(value)
    raise MalformedInputError(
        f"{path}: expected a Name (string or non-negative integer)", subject=path
    )


def _optional_name(obj: dict, key: str, path: str) -> Name | None:
    value = obj.get(key)
    if value is None:
        return None
    return _name(value, f"{path}.{key}")


def _type(value: Any, path: str) -> Type:
    return Type(
        id=_int(_field(value, "ID", path), f"{path}.ID"),
        name=_str(_field(value, "Name", path), f"{path}.Name"),
    )


def _operand(value: Any, path: str) -> Operand:
    constant = _field(value, "Constant", path)
    if not isinstance(constant, bool):
        raise MalformedInputError(
            f"{path}.Constant: expected a boolean", subject=f"{path}.Constant"
        )
    name = _optional_name(value, "Name", path)
    if name is None and not constant:
        raise MalformedInputError(
            f"{path}.Name: non-constant operand has no Name", subject=f"{path}.Name"
        )
    return Operand(
        constant=constant,
        name=name,
        type=_type(_field(value, "Type", path), f"{path}.Type"),
    )


def _instruction(value: Any, path: str) -> Instruction:
    opcode = _int(_field(value, "Opcode", path), f"{path}.Opcode")
    uses = [
        _operand(item, f"{path}.Uses[{idx}]")
        for idx, item in enumerate(_list(_field(value, "Uses", path), f"{path}.Uses"))
    ]
    incoming_raw = value.get("Blocks") or []
    incoming = [
        _name(item, f"{path}.Blocks[{idx}]")
        for idx, item in enumerate(_list(incoming_raw, f"{path}.Blocks"))
    ]
    try:
        return Instruction.decode(
            opcode,
            dest=_optional_name(value, "Dest", path),
            uses=uses,
            incoming=incoming,
        )
    except MalformedInputError as exc:
        raise MalformedInputError(f"{path}: {exc}", subject=path) from exc


def _block(value: Any, path: str) -> BasicBlock:
    name = _name(_field(value, "Name", path), f"{path}.Name")
    instructions = tuple(
        _instruction(item, f"{path}.Instructions[{idx}]")
        for idx, item in enumerate(
            _list(_field(value, "Instructions", path), f"{path}.Instructions")
        )
    )
    terminator = _instruction(_field(value, "Terminator", path), f"{path}.Terminator")
    try:
        return BasicBlock(name=name, instructions=instructions, terminator=terminator)
    except MalformedInputError as exc:
        raise MalformedInputError(f"{path}: {exc}", subject=path) from exc


def _param(value: Any, path: str) -> Param:
    return Param(
        name=_name(_field(value, "Name", path), f"{path}.Name"),
        type=_type(_field(value, "Type", path), f"{path}.Type"),
    )


def _function(value: Any, path: str) -> Function:
    name = _str(_field(value, "GlobalIdentifier", path), f"{path}.GlobalIdentifier")
    params = tuple(
        _param(item, f"{path}.Params[{idx}]")
        for idx, item in enumerate(_list(_field(value, "Params", path), f"{path}.Params"))
    )
    blocks = tuple(
        _block(item, f"{path}.BasicBlock[{idx}]")
        for idx, item in enumerate(
            _list(_field(value, "BasicBlock", path), f"{path}.BasicBlock")
        )
    )
    return Function(name=name, params=params, blocks=blocks)


def decode_module(document: Any) -> Module:
    """Decode an already-parsed JSON document into a Module."""
    functions = _list(_field(document, "FunctionList", "$"), "FunctionList")
    return Module(
        functions=tuple(
            _function(item, f"FunctionList[{idx}]") for idx, item in enumerate(functions)
        )
    )


def parse_module(text: str) -> Module:
    """Parse JSON text emitted by the external IR parser."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedInputError(f"input is not valid JSON: {exc}", subject="$") from exc
    return decode_module(document)


def load_module(path: str | Path) -> Module:
    """Read and decode a JSON module file."""
    return parse_module(Path(path).read_text(encoding="utf-8"))
