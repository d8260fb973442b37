import pytest
from Crypto.Cipher import AES
from Crypto.Hash import CMAC

from libsun import DEFAULT_KEY, ReplayLedger, SunVerifier


def _library_cmac(key, data):
    cobj = CMAC.new(key, ciphermod=AES)
    cobj.update(data)
    return cobj.digest()


def _reference_session_key(key, uid_hex, ctr_hex):
    sv2 = b"\x3c\xc3\x00\x01\x00\x80" + bytes.fromhex(uid_hex) + bytes.fromhex(ctr_hex)[::-1]
    return _library_cmac(key, sv2)


def _reference_sdmmac(uid_hex, ctr_hex, key=DEFAULT_KEY):
    full = _library_cmac(_reference_session_key(key, uid_hex, ctr_hex), b"")
    return full[0::2].hex()


@pytest.fixture
def library_cmac():
    """CMAC from pycryptodome, used as an independent oracle."""
    return _library_cmac


@pytest.fixture
def session_key():
    return _reference_session_key


@pytest.fixture
def sign():
    """Returns the SDMMAC hex a genuine tag would mirror for (uid, ctr)."""
    return _reference_sdmmac


@pytest.fixture
def ledger():
    return ReplayLedger()


@pytest.fixture
def verifier(ledger):
    return SunVerifier(DEFAULT_KEY, ledger=ledger)
