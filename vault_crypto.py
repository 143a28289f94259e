import base64
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

TOKEN_PREFIX = 'v1:'
NONCE_SIZE = 12


class VaultCryptoError(Exception):
    pass


def generate_key():
    """
    Generate a 256-bit (32-byte) random key, encoded in URL-safe base64.
    """
    return base64.urlsafe_b64encode(AESGCM.generate_key(bit_length=256)).decode('utf-8')


class VaultCipher:
    """AES-GCM for password entry secrets.

    Tokens are ``v1:`` + urlsafe-base64(nonce || ciphertext || tag). The entry id
    is not bound as associated data, so a token can move between rows.
    """

    def __init__(self, key):
        try:
            raw_key = base64.urlsafe_b64decode(key)
        except (ValueError, TypeError) as e:
            raise VaultCryptoError(f"Invalid vault key encoding: {e}")
        if len(raw_key) != 32:
            raise VaultCryptoError("Vault key must decode to 32 bytes")
        self.aesgcm = AESGCM(raw_key)

    def encrypt(self, plaintext):
        nonce = os.urandom(NONCE_SIZE)
        ct = self.aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)
        return TOKEN_PREFIX + base64.urlsafe_b64encode(nonce + ct).decode('utf-8')

    def decrypt(self, token):
        if not self.is_token(token):
            # written before a key was configured
            return token
        try:
            encrypted_bytes = base64.urlsafe_b64decode(token[len(TOKEN_PREFIX):])
            nonce = encrypted_bytes[:NONCE_SIZE]
            ct = encrypted_bytes[NONCE_SIZE:]
            return self.aesgcm.decrypt(nonce, ct, None).decode('utf-8')
        except (InvalidTag, ValueError) as e:
            raise VaultCryptoError(f"Decryption failed: {e!r}")

    @staticmethod
    def is_token(value):
        return isinstance(value, str) and value.startswith(TOKEN_PREFIX)


def cipher_from_config(app_config):
    key = app_config.get('VAULT_ENCRYPTION_KEY')
    if not key:
        logger.warning("VAULT_ENCRYPTION_KEY not set, password entries are stored unencrypted")
        return None
    return VaultCipher(key)
