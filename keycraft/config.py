"""
Configuration constants for the Keycraft credential vault.
"""

import os

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "Keycraft"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_DESCRIPTION = "Local API key vault with masked listings."  # Use: One-line description shown by the command-line help. Type: str. Range: Any valid string.

# Security Settings
SALT_SIZE = 16  # Use: Size of the cryptographic salt in bytes for key derivation. Type: int. Range: Recommended to be at least 16 bytes (128 bits) for security.
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 16 (AES-128), 24 (AES-192), or 32 (AES-256) bytes.
NONCE_SIZE = 12  # Use: Size of the Nonce (Number used once) in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Type: int. Range: 16 bytes (128 bits) is the recommended size for GCM.
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Controls the number of iterations. Type: int. Range: Typically 1 to 10. Higher values increase security but also computation time.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter. Controls the memory usage in KiB. Type: int. Range: Recommended to be at least 65536 (64 MB). Higher values increase security but also memory usage.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter. Controls the number of threads/lanes. Type: int. Range: Typically 1 to 8, often set to the number of CPU cores.

# Masking Settings
MASK_PREFIX_LENGTH = 4  # Use: Number of leading secret characters shown in a masked value. Type: int. Range: 0 to MASK_MIN_SECRET_LENGTH - MASK_SUFFIX_LENGTH - 1.
MASK_SUFFIX_LENGTH = 4  # Use: Number of trailing secret characters shown in a masked value. Type: int. Range: 0 to MASK_MIN_SECRET_LENGTH - MASK_PREFIX_LENGTH - 1.
MASK_MIN_SECRET_LENGTH = 12  # Use: Shortest secret whose prefix/suffix may be shown; shorter secrets are fully hidden. Type: int. Range: Greater than MASK_PREFIX_LENGTH + MASK_SUFFIX_LENGTH.
MASK_PLACEHOLDER = "..."  # Use: Fixed interior placeholder between the shown prefix and suffix. Type: str. Range: Any short string.
MASK_HIDDEN_TEXT = "********"  # Use: Fixed mask used for secrets too short to show any characters. Type: str. Range: Any string.
MASK_HIDDEN_TEXT_ALT = "••••••••"  # Use: Fallback fixed mask for the rare secret equal to MASK_HIDDEN_TEXT. Type: str. Range: Any string different from MASK_HIDDEN_TEXT.

# Storage Settings
VAULT_MAGIC_BYTES = b"KCV1"  # Use: Magic bytes identifying a Keycraft vault file. Type: bytes. Range: Exactly 4 bytes.
VAULT_FORMAT_VERSION = 1  # Use: Binary layout version written in the vault header. Type: int. Range: Positive integer.
VAULT_PAYLOAD_FORMAT = "keycraft-vault"  # Use: Format marker stored inside the JSON payload. Type: str. Range: Any string.
VAULT_PAYLOAD_VERSION = 1  # Use: Schema version of the JSON payload. Type: int. Range: Positive integer.
VAULT_TMP_SUFFIX = ".tmp"  # Use: Suffix of the temporary file written before the atomic rename. Type: str. Range: Any valid filename suffix.
STORAGE_IO_TIMEOUT_SECONDS = float(os.environ.get("KEYCRAFT_IO_TIMEOUT", "10"))  # Use: Upper bound on a single vault load or commit before it fails. Type: float. Range: Positive number of seconds.

# File and Directory Names
CONFIG_DIR_NAME = ".keycraft"  # Use: Name of the hidden directory within the user's home directory where Keycraft stores its data files. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.kcv"  # Use: Default filename for the vault. Type: str. Range: Any valid filename.
VAULT_PATH_ENV = "KEYCRAFT_VAULT_PATH"  # Use: Environment variable overriding the vault location. Type: str. Range: Any environment variable name.
MASTER_PASSWORD_ENV = "KEYCRAFT_MASTER_PASSWORD"  # Use: Environment variable supplying the master password non-interactively. Type: str. Range: Any environment variable name.

# Logging
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"  # Use: Format string passed to logging.basicConfig. Type: str. Range: Any logging format string.


def default_vault_path() -> str:
    """Vault location from the environment, else ~/.keycraft/vault.kcv."""
    override = os.environ.get(VAULT_PATH_ENV)
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME, DEFAULT_VAULT_FILE)
