# STATUS: done
"""
Channel cipher for the Burrow tunnel client.
Derives an AES-128 key from the shared token and runs AES-CFB as a stream
cipher with separate keystream cursors for each direction.

CFB carries no integrity check: tampered ciphertext decrypts to garbage
without raising. The channel is confidential, not authenticated.
"""

import os
import threading
from typing import Union

from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .constants import AES_KEY_SIZE, AES_IV_SIZE, KDF_SALT, KDF_ITERATIONS


class CipherError(Exception):
    """Raised when key or IV material has the wrong length."""
    pass


def derive_key(token: str) -> bytes:
    """
    Derive the 16-byte channel key from a shared token.
    
    Args:
        token: Shared secret, may be empty
        
    Returns:
        bytes: PBKDF2-HMAC-SHA1 output keyed with the fixed protocol salt
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=AES_KEY_SIZE,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(token.encode('utf-8'))


def generate_iv() -> bytes:
    """Generate a random 16-byte IV for a new connection."""
    return os.urandom(AES_IV_SIZE)


class _StreamHalf:
    """One direction of the channel: a CFB context and the lock owning it."""
    
    def __init__(self, context):
        self._context = context
        self._lock = threading.Lock()
        self.bytes_processed = 0
    
    def advance(self, buffer: Union[bytes, bytearray, memoryview]) -> bytes:
        with self._lock:
            out = self._context.update(bytes(buffer))
            self.bytes_processed += len(out)
        if isinstance(buffer, bytearray):
            buffer[:] = out
        elif isinstance(buffer, memoryview) and not buffer.readonly:
            buffer.cast('B')[:] = out
        return out


class ChannelCipher:
    """
    AES-128-CFB cipher bound to one tunnel connection.
    
    Each call continues the keystream where the previous call in the same
    direction stopped, so calls must match the bytes on the wire exactly and
    in order. Encrypt and decrypt hold independent locks and never touch each
    other's cursor.
    """
    
    def __init__(self, token: str, iv: bytes):
        if len(iv) != AES_IV_SIZE:
            raise CipherError(f"IV must be {AES_IV_SIZE} bytes, got {len(iv)}")
        
        self._key = derive_key(token)
        if len(self._key) != AES_KEY_SIZE:
            raise CipherError(f"Key must be {AES_KEY_SIZE} bytes, got {len(self._key)}")
        self._iv = bytes(iv)
        
        cipher = Cipher(algorithms.AES(self._key), CFB(self._iv))
        self._encryptor = _StreamHalf(cipher.encryptor())
        self._decryptor = _StreamHalf(cipher.decryptor())
    
    @property
    def key(self) -> bytes:
        return self._key
    
    @property
    def iv(self) -> bytes:
        return self._iv
    
    @property
    def bytes_encrypted(self) -> int:
        return self._encryptor.bytes_processed
    
    @property
    def bytes_decrypted(self) -> int:
        return self._decryptor.bytes_processed
    
    def encrypt(self, buffer: Union[bytes, bytearray, memoryview]) -> bytes:
        """
        Encrypt the next outbound bytes.
        
        A writable buffer is transformed in place; the ciphertext is also
        returned so immutable ``bytes`` can be passed.
        """
        return self._encryptor.advance(buffer)
    
    def decrypt(self, buffer: Union[bytes, bytearray, memoryview]) -> bytes:
        """Decrypt the next inbound bytes, in place when the buffer allows it."""
        return self._decryptor.advance(buffer)
    
    advance_encrypt = encrypt
    advance_decrypt = decrypt
