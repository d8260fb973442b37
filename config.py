import binascii

# SDMFileReadKey shared by all tags (factory default, change for production)
MASTER_KEY = binascii.unhexlify("00000000000000000000000000000000")

# for plaintext mirroring
UID_PARAM = "uid"
CTR_PARAM = "ctr"

# always applied
SDMMAC_PARAM = "cmac"

# JSON file with registered tags, None for the built-in demo records
TAG_DIRECTORY_FILE = None

LOG_LEVEL = "INFO"
