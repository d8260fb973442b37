"""
Validation of plaintext SUN messages (UID and SDMReadCtr mirrored in clear,
SDMMAC computed over an empty message).

    SV2                = 3CC300010080 || UID || SDMReadCtr (little endian)
    KSesSDMFileReadMAC = CMAC(SDMFileReadKey, SV2)
    SDMMAC             = truncate(CMAC(KSesSDMFileReadMAC, ""))
"""

import binascii
import enum
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from .cmac import KEY_SIZE, aes_cmac, truncate_mac
from .ledger import ReplayLedger

logger = logging.getLogger(__name__)

UID_SIZE = 7
READ_CTR_SIZE = 3
SDMMAC_SIZE = 8

SV2_HEADER = b"\x3C\xC3\x00\x01\x00\x80"

# factory default SDMFileReadKey
DEFAULT_KEY = b"\x00" * KEY_SIZE


class EncMode(enum.IntEnum):
    AES = 0


class SunError(Exception):
    pass


class MalformedInput(SunError):
    pass


class InvalidSignature(SunError):
    pass


class ReplayDetected(SunError):
    pass


class OutcomeStatus(enum.Enum):
    ACCEPTED = "accepted"
    INVALID_SIGNATURE = "invalid_signature"
    REPLAY_DETECTED = "replay_detected"
    MALFORMED_INPUT = "malformed_input"


@dataclass(frozen=True)
class PlainSunFields:
    uid: bytes
    read_ctr: bytes
    sdmmac: bytes

    @property
    def uid_hex(self) -> str:
        return self.uid.hex()

    @property
    def read_ctr_num(self) -> int:
        return int.from_bytes(self.read_ctr, "big")


@dataclass(frozen=True)
class VerificationOutcome:
    status: OutcomeStatus
    uid: Optional[str] = None
    read_ctr: Optional[int] = None
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.status is OutcomeStatus.ACCEPTED


def _unhex(name: str, value, size: int) -> bytes:
    try:
        raw = binascii.unhexlify(value)
    except (binascii.Error, ValueError, TypeError):
        raise MalformedInput(f"Failed to decode {name}.") from None

    if len(raw) != size:
        raise MalformedInput(f"Incorrect length of {name}, expected {size} bytes.")

    return raw


def parse_fields(uid_hex, ctr_hex, sdmmac_hex) -> PlainSunFields:
    """
    Decode the three hex fields of a plaintext SUN message. Case is ignored;
    anything that is not exactly UID(7) / SDMReadCtr(3) / SDMMAC(8) bytes
    raises MalformedInput.
    """
    return PlainSunFields(uid=_unhex("uid", uid_hex, UID_SIZE),
                          read_ctr=_unhex("read counter", ctr_hex, READ_CTR_SIZE),
                          sdmmac=_unhex("sdmmac", sdmmac_hex, SDMMAC_SIZE))


def generate_sv2(uid: bytes, read_ctr_le: bytes) -> bytes:
    if len(uid) != UID_SIZE or len(read_ctr_le) != READ_CTR_SIZE:
        raise ValueError("SV2 needs a 7 byte UID and a 3 byte read counter.")
    return SV2_HEADER + uid + read_ctr_le


def calculate_sdmmac(sdm_file_read_key: bytes, uid: bytes, read_ctr: bytes) -> bytes:
    """
    Calculate the 8 byte SDMMAC for a plaintext SUN message.

    :param sdm_file_read_key: 16 byte SDMFileReadKey
    :param uid: 7 byte tag UID
    :param read_ctr: 3 byte SDMReadCtr in the big endian order it is mirrored in the URL
    """
    sv2 = generate_sv2(uid, read_ctr[::-1])
    session_key = aes_cmac(sdm_file_read_key, sv2)
    return truncate_mac(aes_cmac(session_key, b""))


def validate_plain_sun(uid: bytes, read_ctr: bytes, sdmmac: bytes, sdm_file_read_key: bytes) -> dict:
    """
    Check the SDMMAC of a plaintext SUN message in constant time.

    Raises InvalidSignature on mismatch, otherwise returns the decoded message.
    """
    for name, value, size in (("uid", uid, UID_SIZE),
                              ("read counter", read_ctr, READ_CTR_SIZE),
                              ("sdmmac", sdmmac, SDMMAC_SIZE)):
        if len(value) != size:
            raise MalformedInput(f"Incorrect length of {name}, expected {size} bytes.")

    expected = calculate_sdmmac(sdm_file_read_key, uid, read_ctr)

    if not hmac.compare_digest(expected, sdmmac):
        raise InvalidSignature("Message is not properly signed - invalid MAC")

    return {
        "encryption_mode": EncMode.AES,
        "uid": uid,
        "read_ctr": int.from_bytes(read_ctr, "big"),
    }


class SunVerifier:
    """
    Authenticates taps and rejects replays.

    The signature is always checked first; the replay ledger is consulted
    and advanced only for authentic messages.
    """

    def __init__(self, sdm_file_read_key: bytes, ledger: Optional[ReplayLedger] = None) -> None:
        if len(sdm_file_read_key) != KEY_SIZE:
            raise ValueError("SDMFileReadKey must be 16 bytes.")
        self._key = bytes(sdm_file_read_key)
        self.ledger = ledger if ledger is not None else ReplayLedger()

    def __repr__(self) -> str:
        return f"<SunVerifier ledger_size={len(self.ledger)}>"

    def _check_fields(self, fields: PlainSunFields) -> dict:
        res = validate_plain_sun(uid=fields.uid,
                                 read_ctr=fields.read_ctr,
                                 sdmmac=fields.sdmmac,
                                 sdm_file_read_key=self._key)

        if not self.ledger.advance(fields.uid_hex, res["read_ctr"]):
            raise ReplayDetected(f"Read counter {res['read_ctr']} was already used.")

        return res

    def check(self, uid_hex, ctr_hex, sdmmac_hex) -> dict:
        """
        Like verify(), but raises MalformedInput, InvalidSignature or
        ReplayDetected instead of returning an outcome.
        """
        return self._check_fields(parse_fields(uid_hex, ctr_hex, sdmmac_hex))

    def verify(self, uid_hex, ctr_hex, sdmmac_hex) -> VerificationOutcome:
        try:
            fields = parse_fields(uid_hex, ctr_hex, sdmmac_hex)
        except MalformedInput as err:
            logger.info("Rejected malformed tap: %s", err)
            return VerificationOutcome(OutcomeStatus.MALFORMED_INPUT, reason=str(err))

        uid = fields.uid_hex
        read_ctr = fields.read_ctr_num

        try:
            self._check_fields(fields)
        except InvalidSignature as err:
            logger.warning("Invalid SDMMAC for uid=%s", uid)
            return VerificationOutcome(OutcomeStatus.INVALID_SIGNATURE, uid=uid, reason=str(err))
        except ReplayDetected as err:
            logger.warning("Replay detected for uid=%s: %s", uid, err)
            return VerificationOutcome(OutcomeStatus.REPLAY_DETECTED, uid=uid,
                                       read_ctr=read_ctr, reason=str(err))

        logger.info("Accepted tap uid=%s read_ctr=%d", uid, read_ctr)
        return VerificationOutcome(OutcomeStatus.ACCEPTED, uid=uid, read_ctr=read_ctr)
