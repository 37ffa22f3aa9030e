# STATUS: done
"""
Constants used throughout the Burrow tunnel client.
"""

# Key derivation (shared with the rendezvous server, not configurable)
KDF_SALT = b"frp"
KDF_ITERATIONS = 64

# Crypto configuration
AES_KEY_SIZE = 16  # 128 bits
AES_IV_SIZE = 16  # one AES block

# Default addresses
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 7000
DEFAULT_LOCAL_ADDRESS = "127.0.0.1"

# Name of the proxy registered from command-line properties
DEFAULT_PROXY_NAME = "service"
DEFAULT_PROTOCOL = "tcp"

# Relay buffer size
RECV_BUFFER_SIZE = 16384
