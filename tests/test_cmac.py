import random

import pytest
from Crypto.Cipher import AES

from libsun.cmac import Cmac, aes_cmac, derive_subkeys, truncate_mac

NIST_KEY = bytes.fromhex("2b7e151628aed2a6abf7158809cf4f3c")
NIST_MSG = bytes.fromhex(
    "6bc1bee22e409f96e93d7e117393172a"
    "ae2d8a571e03ac9c9eb76fac45af8e51"
    "30c81c46a35ce411e5fbc1191a0a52ef"
    "f69f2445df4f9b17ad2b417be66c3710"
)


def test_zero_key_subkeys():
    key = bytes(16)

    l_block = AES.new(key, AES.MODE_ECB).encrypt(bytes(16))
    assert l_block.hex() == "66e94bd4ef8a2c3b884cfa59ca342b2e"

    k1, k2 = derive_subkeys(key)
    assert k1.hex() == "cdd297a9df1458771099f4b39468565c"
    assert k2.hex() == "9ba52f53be28b0ee2133e96728d0ac3f"


def test_nist_subkeys():
    k1, k2 = derive_subkeys(NIST_KEY)
    assert k1.hex() == "fbeed618357133667c85e08f7236a8de"
    assert k2.hex() == "f7ddac306ae266ccf90bc11ee46d513b"


@pytest.mark.parametrize("length, expected", [
    (0, "bb1d6929e95937287fa37d129b756746"),
    (16, "070a16b46b4d4144f79bdd9dd04a287c"),
    (40, "dfa66747de9ae63030ca32611497c827"),
    (64, "51f0bebf7e3b9d92fc49741779363cfe"),
])
def test_nist_vectors(length, expected):
    assert aes_cmac(NIST_KEY, NIST_MSG[:length]).hex() == expected


def test_empty_message_is_single_padded_block():
    key = bytes(16)
    _, k2 = derive_subkeys(key)
    block = bytes(a ^ b for a, b in zip(b"\x80" + bytes(15), k2))

    assert aes_cmac(key, b"") == AES.new(key, AES.MODE_ECB).encrypt(block)


@pytest.mark.parametrize("length", [1, 15, 16, 17, 31, 32, 33, 47, 48])
def test_matches_library(library_cmac, length):
    rng = random.Random(length)
    key = rng.randbytes(16)
    msg = rng.randbytes(length)

    assert aes_cmac(key, msg) == library_cmac(key, msg)


def test_cmac_object_reuses_subkeys():
    cmac = Cmac(NIST_KEY)

    assert (cmac.k1, cmac.k2) == derive_subkeys(NIST_KEY)
    assert cmac.digest(NIST_MSG[:16]) == cmac.digest(NIST_MSG[:16])
    assert cmac.digest() == aes_cmac(NIST_KEY)


@pytest.mark.parametrize("key", [b"", bytes(15), bytes(24), bytes(32)])
def test_rejects_non_aes128_key(key):
    with pytest.raises(ValueError):
        aes_cmac(key, b"")


def test_truncate_takes_even_indices():
    full = bytes.fromhex("00112233445566778899aabbccddeeff")
    assert truncate_mac(full).hex() == "0022446688aaccee"


def test_truncate_is_not_a_prefix():
    full = bytes(range(16))
    assert truncate_mac(full) == bytes([0, 2, 4, 6, 8, 10, 12, 14])
    assert truncate_mac(full) != full[:8]


@pytest.mark.parametrize("size", [0, 8, 15, 17])
def test_truncate_rejects_wrong_width(size):
    with pytest.raises(ValueError):
        truncate_mac(bytes(size))


def test_cmac_object_builds_one_cipher(monkeypatch):
    created = []
    new = AES.new

    def counting_new(*args, **kwargs):
        created.append(args)
        return new(*args, **kwargs)

    monkeypatch.setattr(AES, "new", counting_new)

    cmac = Cmac(bytes(16))

    assert len(created) == 1
    assert cmac.k1.hex() == "cdd297a9df1458771099f4b39468565c"
    assert cmac.k2.hex() == "9ba52f53be28b0ee2133e96728d0ac3f"
