import base64

import pytest

from nrschub import signature
from nrschub.signature import SignatureError, Signer, sign, verify

SIGN_HASH = "KLop9582tzXZJbytWjiWLcnpEdvJI7mUymbnUPXweOM="
SIGN_PRIV_KEY = "jQGnkLnZlX2DjBUd8JKgHgw23zSdRL/Azx3foi/WqvE="
SIGN_SIG = "YCdh5Q6jOiKQy2R9mQwKJ6tBnq31VFZX2dkb7Ypr+/5z6jj4GLEFT9RtryC4+mSILtKKLeN9YnBmYI4Xa+4tDw=="

VERIFY_HASH = "uPQs4TwLtDGRAdH8sbIJ1ZyWpEmwHWRAhXpamODZ7Kk="
VERIFY_PUB_KEY = "A0qTjB3ZjHf2yT1EIvLrkVAWY8MPSueNcB4GTlKGo/o6"
VERIFY_SIG = "up+2Fjhnu4OjJeesBPCgoZE+6ReqQDdnqcjhbq2iaulHjlwKYLcwRrD3udSWdHS57ceQeZ+LVPWYBMWBloAgpA=="


class _KeySigner(Signer):
    def __init__(self, key):
        self._key = key

    def sign(self, hash_bytes, address):
        return signature.sign(hash_bytes, self._key)


def test_sign_known_vector():
    result = sign(base64.b64decode(SIGN_HASH), base64.b64decode(SIGN_PRIV_KEY))
    assert result == SIGN_SIG


def test_verify_known_vector():
    assert verify(base64.b64decode(VERIFY_HASH), VERIFY_SIG, VERIFY_PUB_KEY) is None


def test_sign_is_deterministic_and_compact():
    hash_bytes = base64.b64decode(SIGN_HASH)
    priv = base64.b64decode(SIGN_PRIV_KEY)
    first = sign(hash_bytes, priv)
    assert first == sign(hash_bytes, priv)
    assert len(base64.b64decode(first)) == 64


def test_verify_rejects_other_hash():
    with pytest.raises(SignatureError):
        verify(base64.b64decode(SIGN_HASH), VERIFY_SIG, VERIFY_PUB_KEY)


def test_verify_rejects_tampered_signature():
    raw = bytearray(base64.b64decode(VERIFY_SIG))
    raw[10] ^= 0x01
    tampered = base64.b64encode(bytes(raw)).decode()
    with pytest.raises(SignatureError):
        verify(base64.b64decode(VERIFY_HASH), tampered, VERIFY_PUB_KEY)


def test_verify_rejects_wrong_signature_length():
    short_sig = base64.b64encode(base64.b64decode(VERIFY_SIG)[:63]).decode()
    with pytest.raises(SignatureError):
        verify(base64.b64decode(VERIFY_HASH), short_sig, VERIFY_PUB_KEY)


def test_verify_rejects_bad_base64():
    with pytest.raises(SignatureError):
        verify(base64.b64decode(VERIFY_HASH), "not base64!!", VERIFY_PUB_KEY)


def test_verify_rejects_bad_public_key():
    bad_key = base64.b64encode(b"\x05" + b"\x00" * 32).decode()
    with pytest.raises(SignatureError):
        verify(base64.b64decode(VERIFY_HASH), VERIFY_SIG, bad_key)


def test_sign_rejects_short_hash():
    with pytest.raises(SignatureError):
        sign(b"\x01" * 31, base64.b64decode(SIGN_PRIV_KEY))


def test_sign_rejects_zero_secret_key():
    with pytest.raises(SignatureError):
        sign(base64.b64decode(SIGN_HASH), b"\x00" * 32)


def test_sign_rejects_wrong_key_length():
    with pytest.raises(SignatureError):
        sign(base64.b64decode(SIGN_HASH), b"\x01" * 16)


def test_signer_is_abstract():
    with pytest.raises(TypeError):
        Signer()


def test_signer_subclass_can_delegate_to_sign():
    hash_bytes = base64.b64decode(SIGN_HASH)
    key = base64.b64decode(SIGN_PRIV_KEY)
    direct = signature.sign(hash_bytes, key)
    signer = _KeySigner(key)
    assert direct == SIGN_SIG
    assert signer.sign(hash_bytes, "ADDRESS") == direct