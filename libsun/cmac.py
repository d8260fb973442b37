"""
AES-128 CMAC (NIST SP 800-38B) and the SUN MAC truncation rule.

AES-ECB from pycryptodome is used as the block primitive only; subkey
generation, padding and chaining are done here so the exact byte placement
can be pinned by tests.
"""

from Crypto.Cipher import AES

BLOCK_SIZE = 16
KEY_SIZE = 16

# Rb for a 128-bit block cipher
RB = 0x87


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def _dbl(block: bytes) -> bytes:
    """
    Doubling in GF(2^128): shift left by one bit, then XOR Rb into the
    last byte if the MSB was set. The XOR is applied through a mask so
    there is no branch on the secret bit.
    """
    out = bytearray(BLOCK_SIZE)
    carry = 0
    for i in range(BLOCK_SIZE - 1, -1, -1):
        out[i] = ((block[i] << 1) & 0xFF) | carry
        carry = block[i] >> 7

    out[-1] ^= RB & -carry
    return bytes(out)


def _check_key(key: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise ValueError("AES-128 key must be 16 bytes.")


def derive_subkeys(key: bytes) -> tuple[bytes, bytes]:
    """
    Returns (K1, K2) for the given key.

    L  = AES_K(0^128)
    K1 = dbl(L)
    K2 = dbl(K1)
    """
    _check_key(key)
    return _subkeys(AES.new(key, AES.MODE_ECB))


def _subkeys(aes) -> tuple[bytes, bytes]:
    l_block = aes.encrypt(bytes(BLOCK_SIZE))
    k1 = _dbl(l_block)
    k2 = _dbl(k1)
    return k1, k2


class Cmac:
    """
    CMAC bound to one key. The subkeys depend only on the key, so they are
    computed once here; use a new instance for a different key.
    """

    def __init__(self, key: bytes) -> None:
        _check_key(key)
        self._aes = AES.new(key, AES.MODE_ECB)
        self.k1, self.k2 = _subkeys(self._aes)

    def _encrypt(self, block: bytes) -> bytes:
        return self._aes.encrypt(block)

    def digest(self, message: bytes = b"") -> bytes:
        if not message:
            # single padded block, no chaining
            padded = b"\x80" + bytes(BLOCK_SIZE - 1)
            return self._encrypt(_xor(padded, self.k2))

        remainder = len(message) % BLOCK_SIZE
        if remainder == 0:
            body = message[:-BLOCK_SIZE]
            last = _xor(message[-BLOCK_SIZE:], self.k1)
        else:
            body = message[:len(message) - remainder]
            tail = message[len(message) - remainder:]
            padded = tail + b"\x80" + bytes(BLOCK_SIZE - remainder - 1)
            last = _xor(padded, self.k2)

        chain = bytes(BLOCK_SIZE)
        for offset in range(0, len(body), BLOCK_SIZE):
            chain = self._encrypt(_xor(chain, body[offset:offset + BLOCK_SIZE]))

        return self._encrypt(_xor(chain, last))


def aes_cmac(key: bytes, message: bytes = b"") -> bytes:
    """Compute the full 16 byte AES-CMAC of message under key."""
    return Cmac(key).digest(message)


def truncate_mac(full_mac: bytes) -> bytes:
    """
    Reduce a 16 byte MAC to the 8 byte transmitted form by keeping the
    bytes at indices 0, 2, 4, ... 14. This is not a prefix truncation.
    """
    if len(full_mac) != BLOCK_SIZE:
        raise ValueError("Full MAC must be 16 bytes.")
    return bytes(full_mac[0::2])
