import binascii
import os

MASTER_KEY = binascii.unhexlify(os.environ.get("MASTER_KEY", "00000000000000000000000000000000"))

UID_PARAM = os.environ.get("UID_PARAM", "uid")
CTR_PARAM = os.environ.get("CTR_PARAM", "ctr")

SDMMAC_PARAM = os.environ.get("SDMMAC_PARAM", "cmac")

TAG_DIRECTORY_FILE = os.environ.get("TAG_DIRECTORY_FILE") or None

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
