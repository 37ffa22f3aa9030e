# STATUS: done
"""
Test cases for the Burrow channel cipher.
"""

import hashlib
import os
import warnings
from array import array

import pytest
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.utils import CryptographyDeprecationWarning

from burrow.common.crypto import ChannelCipher, CipherError, derive_key, generate_iv


IV = bytes(range(16))


class TestKeyDerivation:
    """Test cases for token-based key derivation."""
    
    def test_key_is_16_bytes(self):
        """Test derived key length."""
        assert len(derive_key("secret")) == 16
    
    def test_key_is_deterministic(self):
        """Test that the same token always yields the same key."""
        assert derive_key("secret") == derive_key("secret")
    
    def test_different_tokens_different_keys(self):
        """Test that different tokens yield different keys."""
        assert derive_key("secret") != derive_key("secret2")
    
    def test_matches_pbkdf2_sha1(self):
        """Test the derivation against hashlib with the fixed salt and iterations."""
        expected = hashlib.pbkdf2_hmac('sha1', b"secret", b"frp", 64, 16)
        assert derive_key("secret") == expected
    
    def test_empty_token(self):
        """Test that an empty token still yields a deterministic key."""
        key = derive_key("")
        assert len(key) == 16
        assert key == hashlib.pbkdf2_hmac('sha1', b"", b"frp", 64, 16)
    
    def test_unicode_token_uses_utf8(self):
        """Test that non-ASCII tokens are encoded as UTF-8."""
        expected = hashlib.pbkdf2_hmac('sha1', "clé".encode('utf-8'), b"frp", 64, 16)
        assert derive_key("clé") == expected


class TestChannelCipher:
    """Test cases for the AES-CFB channel cipher."""
    
    def test_generate_iv(self):
        """Test IV generation."""
        iv1 = generate_iv()
        iv2 = generate_iv()
        
        assert len(iv1) == 16
        assert iv1 != iv2
    
    def test_invalid_iv_size(self):
        """Test that wrong-length IVs are rejected."""
        for size in [0, 8, 15, 17, 32]:
            with pytest.raises(CipherError):
                ChannelCipher("token", os.urandom(size))
    
    def test_key_and_iv_exposed(self):
        """Test key and IV accessors."""
        cipher = ChannelCipher("token", IV)
        
        assert cipher.key == derive_key("token")
        assert cipher.iv == IV
    
    def test_matches_aes128_cfb(self):
        """Test ciphertext against a reference AES-128-CFB encryptor."""
        plaintext = b"The quick brown fox jumps over the lazy dog"
        reference = Cipher(algorithms.AES(derive_key("token")), CFB(IV)).encryptor()
        
        cipher = ChannelCipher("token", IV)
        
        assert cipher.encrypt(plaintext) == reference.update(plaintext)
    
    def test_ciphertext_differs_from_plaintext(self):
        """Test that encryption changes the data and keeps its length."""
        cipher = ChannelCipher("token", IV)
        plaintext = b"A" * 100
        
        ciphertext = cipher.encrypt(plaintext)
        
        assert len(ciphertext) == len(plaintext)
        assert ciphertext != plaintext
    
    def test_roundtrip_across_chunks(self):
        """Test that chunk boundaries do not affect the keystream."""
        sender = ChannelCipher("token", IV)
        receiver = ChannelCipher("token", IV)
        
        ciphertext = sender.encrypt(b"hello") + sender.encrypt(b" world")
        
        assert len(ciphertext) == 11
        assert receiver.decrypt(ciphertext) == b"hello world"
    
    def test_chunked_decrypt_of_single_encrypt(self):
        """Test decrypting in uneven pieces what was encrypted at once."""
        sender = ChannelCipher("token", IV)
        receiver = ChannelCipher("token", IV)
        plaintext = os.urandom(1000)
        
        ciphertext = sender.encrypt(plaintext)
        pieces = [ciphertext[:1], ciphertext[1:17], ciphertext[17:500], ciphertext[500:]]
        
        assert b"".join(receiver.decrypt(p) for p in pieces) == plaintext
    
    def test_directions_are_independent(self):
        """Test that decrypting does not disturb the encrypt cursor."""
        peer = ChannelCipher("token", IV)
        from_peer = peer.encrypt(b"message from peer")
        
        interleaved = ChannelCipher("token", IV)
        first = interleaved.encrypt(b"AA")
        assert interleaved.decrypt(from_peer) == b"message from peer"
        second = interleaved.encrypt(b"BB")
        
        whole = ChannelCipher("token", IV).encrypt(b"AABB")
        
        assert first == whole[:2]
        assert second == whole[2:]
    
    def test_duplicated_call_desynchronizes(self):
        """Test that re-encrypting a buffer corrupts what follows."""
        sender = ChannelCipher("token", IV)
        receiver = ChannelCipher("token", IV)
        
        sender.encrypt(b"lost")
        ciphertext = sender.encrypt(b"data")
        
        assert receiver.decrypt(ciphertext) != b"data"
    
    def test_in_place_bytearray(self):
        """Test that writable buffers are transformed in place."""
        sender = ChannelCipher("token", IV)
        receiver = ChannelCipher("token", IV)
        buffer = bytearray(b"in place payload")
        
        returned = sender.encrypt(buffer)
        
        assert bytes(buffer) == returned
        assert buffer != bytearray(b"in place payload")
        
        receiver.decrypt(buffer)
        assert buffer == bytearray(b"in place payload")
    
    def test_in_place_non_byte_memoryview(self):
        """Test in-place transform of a memoryview over a wider item type."""
        sender = ChannelCipher("token", IV)
        receiver = ChannelCipher("token", IV)
        words = array('I', [1, 2, 3, 4])
        original = words.tobytes()
        
        returned = sender.encrypt(memoryview(words))
        
        assert words.tobytes() == returned
        assert words.tobytes() != original
        
        receiver.decrypt(memoryview(words))
        assert words.tobytes() == original
    
    def test_readonly_memoryview_left_alone(self):
        """Test that read-only views are not written back."""
        data = b"read only"
        
        returned = ChannelCipher("token", IV).encrypt(memoryview(data))
        
        assert data == b"read only"
        assert returned == ChannelCipher("token", IV).encrypt(data)
    
    def test_no_deprecation_warning(self):
        """Test that building a cipher emits no deprecation warnings."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", CryptographyDeprecationWarning)
            ChannelCipher("token", IV).encrypt(b"data")
    
    def test_wrong_token_yields_garbage(self):
        """Test that a wrong token decrypts without error to garbage."""
        ciphertext = ChannelCipher("right", IV).encrypt(b"secret message")
        
        assert ChannelCipher("wrong", IV).decrypt(ciphertext) != b"secret message"
    
    def test_tampered_ciphertext_is_not_detected(self):
        """Test that CFB gives no integrity check on tampered data."""
        ciphertext = bytearray(ChannelCipher("token", IV).encrypt(b"Authentic message"))
        ciphertext[0] ^= 1
        
        plaintext = ChannelCipher("token", IV).decrypt(bytes(ciphertext))
        
        assert len(plaintext) == len(ciphertext)
        assert plaintext != b"Authentic message"
    
    def test_empty_buffer(self):
        """Test that empty buffers leave the cursor where it was."""
        cipher = ChannelCipher("token", IV)
        
        assert cipher.encrypt(b"") == b""
        assert cipher.encrypt(b"abc") == ChannelCipher("token", IV).encrypt(b"abc")
    
    def test_byte_counters(self):
        """Test per-direction byte counters."""
        cipher = ChannelCipher("token", IV)
        cipher.encrypt(b"12345")
        cipher.decrypt(b"123")
        
        assert cipher.bytes_encrypted == 5
        assert cipher.bytes_decrypted == 3
    
    def test_advance_aliases(self):
        """Test that advance_* behave like encrypt/decrypt."""
        a = ChannelCipher("token", IV)
        b = ChannelCipher("token", IV)
        
        assert a.advance_encrypt(b"xyz") == b.encrypt(b"xyz")
        assert a.advance_decrypt(b"xyz") == b.decrypt(b"xyz")


if __name__ == '__main__':
    pytest.main([__file__])
