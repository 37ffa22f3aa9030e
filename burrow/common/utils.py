# STATUS: done
"""
Utility functions for the Burrow tunnel client.
"""

import json
import logging
import threading
from typing import Dict, Any, Optional, Tuple

from .constants import DEFAULT_PROTOCOL, DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Set up logging for the application.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        
    Returns:
        logging.Logger: Configured logger
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')
    
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    return logging.getLogger('burrow')


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load client properties from a JSON file.
    
    Args:
        config_path: Path to JSON config file
        
    Returns:
        Dict[str, Any]: Raw properties, validated later by the loader
        
    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
    except OSError as e:
        raise ValueError(f"Cannot read config file {config_path}: {e}")
    
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object")
    
    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save client properties to a JSON file.
    
    Args:
        config: Properties dictionary
        config_path: Path to save JSON config file
    """
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)


def generate_config_template(protocol: str = DEFAULT_PROTOCOL) -> Dict[str, Any]:
    """
    Generate a client properties template.
    
    Args:
        protocol: "tcp" for a raw forward, "http"/"https" for a web proxy
        
    Returns:
        Dict[str, Any]: Properties template
    """
    config = {
        "protocol": protocol,
        "remote_address": f"{DEFAULT_SERVER_HOST}:{DEFAULT_SERVER_PORT}",
        "token": "",
        "local_address": "127.0.0.1",
        "local_port": 8080,
        "remote_port": 6000,
    }
    if protocol != "tcp":
        config["subdomain"] = "service"
    return config


def split_host_port(address: str, default_port: Optional[int] = None) -> Tuple[str, Optional[int]]:
    """
    Split "host[:port]" into its parts.
    
    Args:
        address: Host with optional port (e.g., "example.com:7000")
        default_port: Port returned when the address carries none
        
    Returns:
        tuple[str, Optional[int]]: (host, port)
        
    Raises:
        ValueError: If the port part is not a number
    """
    address = address.strip()
    if address.startswith('['):
        # [v6addr]:port
        host, _, rest = address[1:].partition(']')
        if rest.startswith(':'):
            return host, int(rest[1:])
        return host, default_port
    
    if address.count(':') == 1:
        host, port = address.split(':', 1)
        return host.strip(), int(port)
    
    return address, default_port


def format_bytes(num_bytes: int) -> str:
    """
    Format bytes in human readable format.
    
    Args:
        num_bytes: Number of bytes
        
    Returns:
        str: Formatted string (e.g., "1.23 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if num_bytes < 1024.0:
            return f"{num_bytes:.2f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.2f} TB"


class Stats:
    """Byte counters shared by the two relay threads."""
    
    def __init__(self):
        self._lock = threading.Lock()
        self.chunks_in = 0
        self.chunks_out = 0
        self.bytes_in = 0
        self.bytes_out = 0
        self.rejected = 0
    
    def record_in(self, size: int):
        """Record bytes received from the server."""
        with self._lock:
            self.chunks_in += 1
            self.bytes_in += size
    
    def record_out(self, size: int):
        """Record bytes sent to the server."""
        with self._lock:
            self.chunks_out += 1
            self.bytes_out += size
    
    def record_rejected(self):
        """Record a connection dropped because its proxy could not be resolved."""
        with self._lock:
            self.rejected += 1
    
    def __str__(self) -> str:
        return (f"Stats: {self.chunks_in} in ({format_bytes(self.bytes_in)}), "
                f"{self.chunks_out} out ({format_bytes(self.bytes_out)}), "
                f"{self.rejected} rejected")
