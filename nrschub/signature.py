"""secp256k1 ECDSA signing and verification over 32-byte hashes."""

from __future__ import annotations

import abc
import base64
import hashlib
import hmac
from typing import Iterator, Optional, Tuple

_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = Optional[Tuple[int, int]]


class SignatureError(ValueError):
    """Raised for malformed inputs or a signature that does not verify."""


class Signer(abc.ABC):
    """Something that can sign a hash on behalf of an address."""

    @abc.abstractmethod
    def sign(self, hash_bytes: bytes, address: str) -> str:
        """Return the base64 signature of ``hash_bytes`` for ``address``."""


def _add(a: _Point, b: _Point) -> _Point:
    if a is None:
        return b
    if b is None:
        return a
    x1, y1 = a
    x2, y2 = b
    if x1 == x2:
        if (y1 + y2) % _P == 0:
            return None
        lam = 3 * x1 * x1 * pow(2 * y1, -1, _P) % _P
    else:
        lam = (y2 - y1) * pow(x2 - x1, -1, _P) % _P
    x3 = (lam * lam - x1 - x2) % _P
    y3 = (lam * (x1 - x3) - y1) % _P
    return x3, y3


def _mul(k: int, point: _Point) -> _Point:
    result: _Point = None
    addend = point
    while k:
        if k & 1:
            result = _add(result, addend)
        addend = _add(addend, addend)
        k >>= 1
    return result


def _on_curve(x: int, y: int) -> bool:
    return (y * y - x * x * x - 7) % _P == 0


def _decode_b64(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except ValueError as exc:
        raise SignatureError(f"invalid base64 {what}") from exc


def _message(hash_bytes: bytes) -> int:
    if len(hash_bytes) != 32:
        raise SignatureError("message must be 32 bytes")
    return int.from_bytes(hash_bytes, "big") % _N


def _secret_key(priv_key: bytes) -> int:
    if len(priv_key) != 32:
        raise SignatureError("secret key must be 32 bytes")
    d = int.from_bytes(priv_key, "big")
    if not 0 < d < _N:
        raise SignatureError("secret key out of range")
    return d


def _public_key(data: bytes) -> Tuple[int, int]:
    if len(data) == 33 and data[0] in (2, 3):
        x = int.from_bytes(data[1:], "big")
        if x >= _P:
            raise SignatureError("invalid public key")
        rhs = (x * x * x + 7) % _P
        y = pow(rhs, (_P + 1) // 4, _P)
        if y * y % _P != rhs:
            raise SignatureError("invalid public key")
        if y & 1 != data[0] & 1:
            y = _P - y
        return x, y
    if len(data) == 65 and data[0] in (4, 6, 7):
        x = int.from_bytes(data[1:33], "big")
        y = int.from_bytes(data[33:], "big")
        if x >= _P or y >= _P or not _on_curve(x, y):
            raise SignatureError("invalid public key")
        if data[0] != 4 and y & 1 != data[0] & 1:
            raise SignatureError("invalid public key")
        return x, y
    raise SignatureError("invalid public key")


def _rfc6979_nonces(key: bytes, msg: bytes) -> Iterator[int]:
    k = b"\x00" * 32
    v = b"\x01" * 32
    k = hmac.new(k, v + b"\x00" + key + msg, hashlib.sha256).digest()
    v = hmac.new(k, v, hashlib.sha256).digest()
    k = hmac.new(k, v + b"\x01" + key + msg, hashlib.sha256).digest()
    v = hmac.new(k, v, hashlib.sha256).digest()
    while True:
        v = hmac.new(k, v, hashlib.sha256).digest()
        candidate = int.from_bytes(v, "big")
        if 0 < candidate < _N:
            yield candidate
        k = hmac.new(k, v + b"\x00", hashlib.sha256).digest()
        v = hmac.new(k, v, hashlib.sha256).digest()


def sign(hash_bytes: bytes, priv_key: bytes) -> str:
    """Sign a 32-byte hash; return the 64-byte compact signature in base64."""
    z = _message(hash_bytes)
    d = _secret_key(priv_key)
    for nonce in _rfc6979_nonces(priv_key, z.to_bytes(32, "big")):
        point = _mul(nonce, _G)
        if point is None:
            continue
        r = point[0] % _N
        if r == 0:
            continue
        s = pow(nonce, -1, _N) * (z + r * d) % _N
        if s == 0:
            continue
        if s > _N // 2:
            s = _N - s
        raw = r.to_bytes(32, "big") + s.to_bytes(32, "big")
        return base64.b64encode(raw).decode("ascii")
    raise SignatureError("failed to sign")  # pragma: no cover


def verify(hash_bytes: bytes, b64_sig: str, b64_pub_key: str) -> None:
    """Check a base64 compact signature against a hash and base64 public key.

    Raises :class:`SignatureError` if anything is malformed or the
    signature does not verify.
    """
    z = _message(hash_bytes)
    sig = _decode_b64(b64_sig, "signature")
    pub = _public_key(_decode_b64(b64_pub_key, "public key"))

    if len(sig) != 64:
        raise SignatureError("invalid SECP256K1 signature")
    r = int.from_bytes(sig[:32], "big")
    s = int.from_bytes(sig[32:], "big")
    if r >= _N or s >= _N:
        raise SignatureError("invalid SECP256K1 signature")

    if r == 0 or s == 0 or s > _N // 2:
        raise SignatureError("SECP256K1 verify failed")
    w = pow(s, -1, _N)
    point = _add(_mul(z * w % _N, _G), _mul(r * w % _N, pub))
    if point is None or point[0] % _N != r:
        raise SignatureError("SECP256K1 verify failed")