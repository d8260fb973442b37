from .cmac import Cmac, aes_cmac, derive_subkeys, truncate_mac
from .directory import TagDirectory, TagRecord
from .ledger import ReplayLedger
from .sun import (
    DEFAULT_KEY,
    EncMode,
    InvalidSignature,
    MalformedInput,
    OutcomeStatus,
    ReplayDetected,
    SunError,
    SunVerifier,
    VerificationOutcome,
    calculate_sdmmac,
    parse_fields,
    validate_plain_sun,
)
