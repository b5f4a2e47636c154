"""
Symmetric encryption of vault secrets.

Secrets are sealed with Fernet (AES-CBC with an HMAC-SHA256 tag and a random
IV per message). The Fernet key is derived from the process-wide
``VAULT_ENCRYPTION_KEY`` with HKDF so any sufficiently long secret string can
be configured.

Never log plaintext or ciphertext values.
"""
import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from flask import current_app

from errors import DecryptionError

KEY_LENGTH = 32
KEY_CONTEXT = b"vault-entry-secret"


def derive_key(secret):
    """Derive a urlsafe-base64 Fernet key from an arbitrary secret string."""
    if isinstance(secret, str):
        secret = secret.encode('utf-8')
    if not secret:
        raise ValueError("Vault encryption key must not be empty")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=KEY_CONTEXT,
    )
    return base64.urlsafe_b64encode(hkdf.derive(secret))


class VaultCipher:
    def __init__(self, secret):
        self._fernet = Fernet(derive_key(secret))

    def encrypt(self, plaintext):
        return self._fernet.encrypt(plaintext.encode('utf-8')).decode('ascii')

    def decrypt(self, ciphertext):
        try:
            if isinstance(ciphertext, str):
                ciphertext = ciphertext.encode('ascii')
            return self._fernet.decrypt(ciphertext).decode('utf-8')
        except (InvalidToken, UnicodeError, TypeError) as exc:
            raise DecryptionError() from exc


def get_cipher():
    app = current_app._get_current_object()
    cipher = app.extensions.get('vault_cipher')
    if cipher is None:
        cipher = app.extensions['vault_cipher'] = VaultCipher(app.config['VAULT_ENCRYPTION_KEY'])
    return cipher
