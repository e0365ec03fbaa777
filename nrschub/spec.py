"""Data model of units, messages and payloads, with JSON-compatible conversion."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

T = TypeVar("T")

_MISSING = object()


class SpecError(ValueError):
    """Raised when a document does not match the expected structure."""


def _ensure_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise SpecError(f"{what} must be an object")
    return data


def _str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise SpecError(f"field `{name}` must be a string")
    return value


def _uint(bits: int) -> Callable[[Any, str], int]:
    limit = 1 << bits

    def convert(value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SpecError(f"field `{name}` must be an integer")
        if not 0 <= value < limit:
            raise SpecError(f"field `{name}` out of range for u{bits}")
        return value

    return convert


_u32 = _uint(32)
_u64 = _uint(64)


def _list_of(convert: Callable[[Any, str], T]) -> Callable[[Any, str], List[T]]:
    def convert_list(value: Any, name: str) -> List[T]:
        if not isinstance(value, list):
            raise SpecError(f"field `{name}` must be an array")
        return [convert(item, name) for item in value]

    return convert_list


def _str_map(value: Any, name: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise SpecError(f"field `{name}` must be an object")
    return {_str(k, name): _str(v, name) for k, v in value.items()}


def _get(data: Dict[str, Any], key: str, convert: Callable[[Any, str], T], default: Any = _MISSING) -> T:
    if key not in data:
        if default is _MISSING:
            raise SpecError(f"missing field `{key}`")
        return default() if callable(default) else default
    return convert(data[key], key)


def _opt(data: Dict[str, Any], key: str, convert: Callable[[Any, str], T]) -> Optional[T]:
    value = data.get(key)
    return None if value is None else convert(value, key)


def _put_opt(out: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


def _nested(cls: Any) -> Callable[[Any, str], Any]:
    def convert(value: Any, name: str) -> Any:
        return cls.from_dict(value)

    return convert


@dataclass
class Author:
    address: str
    authentifiers: Dict[str, str] = field(default_factory=dict)
    definition: Any = None

    _FIELDS = frozenset({"address", "authentifiers", "definition"})

    @classmethod
    def from_dict(cls, data: Any) -> "Author":
        data = _ensure_dict(data, "author")
        unknown = set(data) - cls._FIELDS
        if unknown:
            raise SpecError(f"unknown field `{sorted(unknown)[0]}` in author")
        return cls(
            address=_get(data, "address", _str),
            authentifiers=_get(data, "authentifiers", _str_map),
            definition=data.get("definition"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"address": self.address}
        if self.authentifiers:
            out["authentifiers"] = dict(self.authentifiers)
        _put_opt(out, "definition", self.definition)
        return out


@dataclass
class SpendProof:
    spend_proof: str
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SpendProof":
        data = _ensure_dict(data, "spend proof")
        return cls(
            spend_proof=_get(data, "spend_proof", _str),
            address=_opt(data, "address", _str),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"spend_proof": self.spend_proof}
        _put_opt(out, "address", self.address)
        return out


@dataclass
class Input:
    """A payment input; every field is optional. ``kind`` is ``type`` in documents."""

    address: Optional[str] = None
    amount: Optional[int] = None
    from_main_chain_index: Optional[int] = None
    serial_number: Optional[int] = None
    message_index: Optional[int] = None
    kind: Optional[str] = None
    output_index: Optional[int] = None
    to_main_chain_index: Optional[int] = None
    unit: Optional[str] = None
    blinding: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Input":
        data = _ensure_dict(data, "input")
        return cls(
            address=_opt(data, "address", _str),
            amount=_opt(data, "amount", _u64),
            from_main_chain_index=_opt(data, "from_main_chain_index", _u32),
            serial_number=_opt(data, "serial_number", _u32),
            message_index=_opt(data, "message_index", _u32),
            kind=_opt(data, "type", _str),
            output_index=_opt(data, "output_index", _u32),
            to_main_chain_index=_opt(data, "to_main_chain_index", _u32),
            unit=_opt(data, "unit", _str),
            blinding=_opt(data, "blinding", _str),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        _put_opt(out, "address", self.address)
        _put_opt(out, "amount", self.amount)
        _put_opt(out, "from_main_chain_index", self.from_main_chain_index)
        _put_opt(out, "serial_number", self.serial_number)
        _put_opt(out, "message_index", self.message_index)
        _put_opt(out, "type", self.kind)
        _put_opt(out, "output_index", self.output_index)
        _put_opt(out, "to_main_chain_index", self.to_main_chain_index)
        _put_opt(out, "unit", self.unit)
        _put_opt(out, "blinding", self.blinding)
        return out


@dataclass
class Output:
    address: str
    amount: int

    @classmethod
    def from_dict(cls, data: Any) -> "Output":
        data = _ensure_dict(data, "output")
        return cls(address=_get(data, "address", _str), amount=_get(data, "amount", _u64))

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "amount": self.amount}


@dataclass
class Payment:
    inputs: List[Input]
    outputs: List[Output]
    address: Optional[str] = None
    asset: Optional[str] = None
    definition_chash: Optional[str] = None
    denomination: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Payment":
        data = _ensure_dict(data, "payment")
        return cls(
            address=_opt(data, "address", _str),
            asset=_opt(data, "asset", _str),
            definition_chash=_opt(data, "definition_chash", _str),
            denomination=_opt(data, "denomination", _u32),
            inputs=_get(data, "inputs", _list_of(_nested(Input))),
            outputs=_get(data, "outputs", _list_of(_nested(Output))),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        _put_opt(out, "address", self.address)
        _put_opt(out, "asset", self.asset)
        _put_opt(out, "definition_chash", self.definition_chash)
        _put_opt(out, "denomination", self.denomination)
        out["inputs"] = [i.to_dict() for i in self.inputs]
        out["outputs"] = [o.to_dict() for o in self.outputs]
        return out


Payload = Union[str, Payment, Any]


def parse_payload(value: Any) -> Payload:
    """Read a payload: text, a payment, or any other value kept as is."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        try:
            return Payment.from_dict(value)
        except SpecError:
            pass
    return value


def payload_to_value(payload: Payload) -> Any:
    """Turn a payload back into its document form."""
    if isinstance(payload, Payment):
        return payload.to_dict()
    return payload


def _payload(value: Any, name: str) -> Payload:
    return parse_payload(value)


@dataclass
class Message:
    app: str
    payload_hash: str
    payload_location: str
    payload: Optional[Payload] = None
    payload_uri: Optional[str] = None
    payload_uri_hash: Optional[str] = None
    spend_proofs: List[SpendProof] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        data = _ensure_dict(data, "message")
        return cls(
            app=_get(data, "app", _str),
            payload=_opt(data, "payload", _payload),
            payload_hash=_get(data, "payload_hash", _str),
            payload_location=_get(data, "payload_location", _str),
            payload_uri=_opt(data, "payload_uri", _str),
            payload_uri_hash=_opt(data, "payload_uri_hash", _str),
            spend_proofs=_get(data, "spend_proofs", _list_of(_nested(SpendProof)), list),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "app": self.app,
            "payload": None if self.payload is None else payload_to_value(self.payload),
            "payload_hash": self.payload_hash,
            "payload_location": self.payload_location,
        }
        _put_opt(out, "payload_uri", self.payload_uri)
        _put_opt(out, "payload_uri_hash", self.payload_uri_hash)
        if self.spend_proofs:
            out["spend_proofs"] = [p.to_dict() for p in self.spend_proofs]
        return out


@dataclass
class HeaderCommissionShare:
    address: str
    earned_headers_commission_share: int

    @classmethod
    def from_dict(cls, data: Any) -> "HeaderCommissionShare":
        data = _ensure_dict(data, "header commission share")
        return cls(
            address=_get(data, "address", _str),
            earned_headers_commission_share=_get(data, "earned_headers_commission_share", _u32),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "earned_headers_commission_share": self.earned_headers_commission_share,
        }


@dataclass
class Unit:
    alt: str
    version: str
    authors: List[Author] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    content_hash: Optional[str] = None
    earned_headers_commission_recipients: List[HeaderCommissionShare] = field(default_factory=list)
    headers_commission: Optional[int] = None
    last_ball: Optional[str] = None
    last_ball_unit: Optional[str] = None
    main_chain_index: Optional[int] = None
    parent_units: List[str] = field(default_factory=list)
    payload_commission: Optional[int] = None
    timestamp: Optional[int] = None
    unit: str = ""
    witnesses: List[str] = field(default_factory=list)
    witness_list_unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Unit":
        data = _ensure_dict(data, "unit")
        return cls(
            alt=_get(data, "alt", _str),
            authors=_get(data, "authors", _list_of(_nested(Author))),
            content_hash=_opt(data, "content_hash", _str),
            earned_headers_commission_recipients=_get(
                data,
                "earned_headers_commission_recipients",
                _list_of(_nested(HeaderCommissionShare)),
                list,
            ),
            headers_commission=_opt(data, "headers_commission", _u32),
            last_ball=_opt(data, "last_ball", _str),
            last_ball_unit=_opt(data, "last_ball_unit", _str),
            main_chain_index=_opt(data, "main_chain_index", _u32),
            messages=_get(data, "messages", _list_of(_nested(Message))),
            parent_units=_get(data, "parent_units", _list_of(_str), list),
            payload_commission=_opt(data, "payload_commission", _u32),
            timestamp=_opt(data, "timestamp", _u64),
            unit=_get(data, "unit", _str, ""),
            version=_get(data, "version", _str),
            witnesses=_get(data, "witnesses", _list_of(_str), list),
            witness_list_unit=_opt(data, "witness_list_unit", _str),
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Unit":
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise SpecError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "alt": self.alt,
            "authors": [a.to_dict() for a in self.authors],
        }
        _put_opt(out, "content_hash", self.content_hash)
        if self.earned_headers_commission_recipients:
            out["earned_headers_commission_recipients"] = [
                r.to_dict() for r in self.earned_headers_commission_recipients
            ]
        _put_opt(out, "headers_commission", self.headers_commission)
        _put_opt(out, "last_ball", self.last_ball)
        _put_opt(out, "last_ball_unit", self.last_ball_unit)
        _put_opt(out, "main_chain_index", self.main_chain_index)
        out["messages"] = [m.to_dict() for m in self.messages]
        if self.parent_units:
            out["parent_units"] = list(self.parent_units)
        _put_opt(out, "payload_commission", self.payload_commission)
        _put_opt(out, "timestamp", self.timestamp)
        if self.unit:
            out["unit"] = self.unit
        out["version"] = self.version
        if self.witnesses:
            out["witnesses"] = list(self.witnesses)
        _put_opt(out, "witness_list_unit", self.witness_list_unit)
        return out

    def is_genesis_unit(self) -> bool:
        """A unit without parents is the genesis unit."""
        return not self.parent_units


@dataclass(frozen=True)
class Definition:
    """An address definition expression: an operator and its arguments."""

    op: str
    args: Any

    @classmethod
    def from_value(cls, value: Any) -> "Definition":
        if not isinstance(value, list):
            raise SpecError("definition must be array")
        if len(value) != 2:
            raise SpecError("expression must be 2-element array")
        op, args = value
        if not isinstance(op, str):
            raise SpecError("op is not a string")
        return cls(op=op, args=args)