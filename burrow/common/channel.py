# STATUS: done
"""
Encrypted stream channel for the Burrow tunnel client.
Pushes every byte sent to or read from the server socket through the
channel cipher. There is no framing: ciphertext is the raw stream.
"""

import socket

from .constants import AES_IV_SIZE, RECV_BUFFER_SIZE
from .crypto import ChannelCipher


class ChannelError(Exception):
    """Raised when the channel socket fails."""
    pass


def send_iv(sock: socket.socket, iv: bytes) -> None:
    """
    Send the connection IV in the clear as the first bytes of the stream.
    
    Raises:
        ChannelError: If send fails
    """
    try:
        sock.sendall(iv)
    except OSError as e:
        raise ChannelError(f"Failed to send IV: {e}")


def recv_iv(sock: socket.socket) -> bytes:
    """
    Receive the peer's 16-byte IV.
    
    Raises:
        ChannelError: If the connection closes before the IV arrives
    """
    return _recv_exactly(sock, AES_IV_SIZE)


def _recv_exactly(sock: socket.socket, num_bytes: int) -> bytes:
    data = b''
    while len(data) < num_bytes:
        try:
            chunk = sock.recv(num_bytes - len(data))
        except OSError as e:
            raise ChannelError(f"Failed to receive: {e}")
        if not chunk:
            raise ChannelError("Connection closed")
        data += chunk
    return data


class EncryptedChannel:
    """
    Socket wrapper that encrypts outbound and decrypts inbound bytes.
    
    One thread may send while another receives; the cipher keeps the two
    directions apart.
    """
    
    def __init__(self, sock: socket.socket, cipher: ChannelCipher):
        self.sock = sock
        self.cipher = cipher
    
    def send(self, data: bytes) -> None:
        """
        Encrypt and send all of data.
        
        Raises:
            ChannelError: If send fails. The outbound keystream has then
                advanced past bytes the peer never received, so the channel
                must be closed rather than retried.
        """
        if not data:
            return
        ciphertext = self.cipher.encrypt(data)
        try:
            self.sock.sendall(ciphertext)
        except OSError as e:
            raise ChannelError(f"Failed to send: {e}")
    
    def recv(self, bufsize: int = RECV_BUFFER_SIZE) -> bytes:
        """
        Receive and decrypt up to bufsize bytes.
        
        Returns:
            bytes: Plaintext, or b"" once the peer has closed
            
        Raises:
            ChannelError: If receive fails
        """
        try:
            data = self.sock.recv(bufsize)
        except OSError as e:
            raise ChannelError(f"Failed to receive: {e}")
        if not data:
            return b''
        return self.cipher.decrypt(data)
    
    def shutdown(self) -> None:
        """Shut down both directions, waking any thread blocked in recv."""
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    
    def close(self) -> None:
        self.sock.close()
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
