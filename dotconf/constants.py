# Encrypted token layout (AES-256-GCM, Argon2id key)
TOKEN_MAGIC = b"DCF1"
TOKEN_VERSION = 1
TOKEN_HDR_FMT = ">4sBIII16s12s"  # magic, ver, t, m, p, salt(16), nonce(12)

# Legacy OpenSSL/CryptoJS token: base64("Salted__" || salt(8) || AES-256-CBC)
LEGACY_MAGIC = b"Salted__"
LEGACY_SALT_SIZE = 8

CIPHER_AES_GCM = "aes-gcm"
CIPHER_LEGACY = "legacy"
CIPHERS = (CIPHER_AES_GCM, CIPHER_LEGACY)
DEFAULT_CIPHER = CIPHER_AES_GCM

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

# Argon2id parameters written into every token
ARGON_TIME_COST = 2
ARGON_MEMORY_COST_KIB = 19 * 1024  # 19 MiB
ARGON_PARALLELISM = 1

# Upper bounds accepted when reading a token
MAX_ARGON_TIME_COST = 16
MAX_ARGON_MEMORY_COST_KIB = 512 * 1024
MAX_ARGON_PARALLELISM = 16

# encodeURIComponent keeps A-Z a-z 0-9 and these
URI_COMPONENT_SAFE = "-_.!~*'()"

KIND_DIRECTORY = "directory"
KIND_FILE = "file"

PASSPHRASE_ENV = "DOTCONF_PASSPHRASE"
