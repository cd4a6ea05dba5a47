from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from .errors import ShapeMismatch, SignatureMismatch, TypeMismatch
from .models import RawLog
from .signatures import EventParam, EventSignature

WORD = 32

# ---------- byte helpers ------------------------------------------------------

def _hexstr_to_bytes(s: str, what: str) -> bytes:
    h = s[2:] if s[:2].lower() == "0x" else s
    if len(h) % 2:
        raise ShapeMismatch(f"{what} has odd hex length ({len(h)})")
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ShapeMismatch(f"{what} is not valid hex: {e}") from e

def _word(b: bytes, i: int) -> bytes:
    return b[i*WORD:(i+1)*WORD]

def _u256(w: bytes) -> int:
    return int.from_bytes(w, "big")

# ---------- 32B word -> python value -----------------------------------------

def _coerce_word(param: EventParam, w: bytes) -> Any:
    t = param.type
    if t == "address":
        if any(w[:12]):
            raise TypeMismatch(f"{param.name}: address word has non-zero high bytes")
        return "0x" + w[-20:].hex()
    if t == "bool":
        v = _u256(w)
        if v not in (0, 1):
            raise TypeMismatch(f"{param.name}: bool word holds {v}")
        return bool(v)
    if t.startswith("uint"):
        bits = int(t[4:])
        v = _u256(w)
        if v >> bits:
            raise TypeMismatch(f"{param.name}: value does not fit {t}")
        return v
    if t.startswith("int"):
        bits = int(t[3:])
        v = int.from_bytes(w, "big", signed=True)
        if not -(1 << (bits - 1)) <= v < (1 << (bits - 1)):
            raise TypeMismatch(f"{param.name}: value does not fit {t}")
        return v
    if t.startswith("bytes"):
        n = int(t[5:])
        if any(w[n:]):
            raise TypeMismatch(f"{param.name}: {t} word has non-zero padding")
        return "0x" + w[:n].hex()
    raise TypeMismatch(f"{param.name}: unsupported type {t}")

def _decode_dynamic(param: EventParam, data: bytes, offset: int) -> Any:
    if offset + WORD > len(data):
        raise ShapeMismatch(f"{param.name}: offset {offset} points past data ({len(data)} bytes)")
    length = _u256(data[offset:offset + WORD])
    start = offset + WORD
    if start + length > len(data):
        raise ShapeMismatch(f"{param.name}: length {length} runs past data ({len(data)} bytes)")
    raw = data[start:start + length]
    if param.type == "string":
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TypeMismatch(f"{param.name}: string is not valid utf-8") from e
    return "0x" + raw.hex()

def _decode_topics(params: tuple[EventParam, ...], topics: tuple[str, ...]) -> Iterator[tuple[str, Any]]:
    for p, t in zip(params, topics):
        w = _hexstr_to_bytes(t, f"topic for {p.name}")
        if len(w) != WORD:
            raise ShapeMismatch(f"topic for {p.name} is {len(w)} bytes, expected {WORD}")
        # dynamic indexed values are only available as their keccak hash
        yield p.name, ("0x" + w.hex() if p.dynamic else _coerce_word(p, w))

def _decode_data(params: tuple[EventParam, ...], data: bytes) -> Iterator[tuple[str, Any]]:
    head = WORD * len(params)
    has_dynamic = any(p.dynamic for p in params)
    if has_dynamic:
        if len(data) < head:
            raise ShapeMismatch(f"data is {len(data)} bytes, expected at least {head}")
    elif len(data) != head:
        raise ShapeMismatch(f"data is {len(data)} bytes, expected {head}")
    for i, p in enumerate(params):
        w = _word(data, i)
        yield p.name, (_decode_dynamic(p, data, _u256(w)) if p.dynamic else _coerce_word(p, w))

# ---------------------------- public API --------------------------------------

@dataclass(slots=True, frozen=True)
class DecodedEvent:
    name: str
    params: dict[str, Any]             # declaration order

    def __getitem__(self, name: str) -> Any:
        return self.params[name]

    def values(self) -> tuple[Any, ...]:
        return tuple(self.params.values())


def decode_log(signature: EventSignature, raw_log: RawLog) -> DecodedEvent:
    """
    Decode `raw_log` against `signature`.

    Indexed parameters come from topics[1:], the rest from the ABI-packed data
    payload. Raises SignatureMismatch when topic0 is another event,
    ShapeMismatch when topic count or data length is off, and TypeMismatch
    when a word cannot hold its declared type.
    """
    if raw_log.topic0 is None or raw_log.topic0.lower() != signature.topic_hash:
        raise SignatureMismatch(f"topic0 {raw_log.topic0} is not {signature}")
    if len(raw_log.topics) != signature.expected_topics:
        raise ShapeMismatch(
            f"{signature} expects {signature.expected_topics} topics, got {len(raw_log.topics)}"
        )

    data = _hexstr_to_bytes(raw_log.data_hex or "0x", "data")
    values = dict(_decode_topics(signature.indexed_params, raw_log.topics[1:]))
    values.update(_decode_data(signature.data_params, data))

    return DecodedEvent(
        name=signature.name,
        params={p.name: values[p.name] for p in signature.params},
    )
