# STATUS: done
"""
Turns externally supplied properties into a ConfigurationStore.
Properties come from the command line and/or a JSON config file.
"""

import logging
from typing import Any, Mapping, Optional

from .config import (
    CommonConfig, ConfigurationStore, InvalidConfigError, ProxyKind,
    TcpProxyConfig, WebProxyConfig,
)
from .constants import (
    DEFAULT_LOCAL_ADDRESS, DEFAULT_PROTOCOL, DEFAULT_PROXY_NAME, DEFAULT_SERVER_PORT,
)
from .utils import split_host_port

logger = logging.getLogger(__name__)

REQUIRED_PROPERTIES = ('local_port', 'remote_port', 'remote_address')


def parse_port(name: str, value: Any, allow_zero: bool = False) -> int:
    """
    Parse a port property.
    
    Raises:
        InvalidConfigError: If the value is not an integer in range
    """
    if isinstance(value, bool):
        raise InvalidConfigError(f"{name} must be a port number, got {value!r}")
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be a port number, got {value!r}")
    
    low = 0 if allow_zero else 1
    if not low <= port <= 65535:
        raise InvalidConfigError(f"{name} out of range: {port}")
    return port


def _optional_str(properties: Mapping[str, Any], name: str) -> Optional[str]:
    value = properties.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def load(properties: Mapping[str, Any]) -> ConfigurationStore:
    """
    Build a store with the common config and one proxy named "service".
    
    Args:
        properties: protocol, local_port, remote_port, remote_address, token,
            and optionally server_port, local_address, custom_domains, subdomain
            
    Returns:
        ConfigurationStore: The loaded store
        
    Raises:
        InvalidConfigError: If a required property is missing or malformed
    """
    missing = [name for name in REQUIRED_PROPERTIES if properties.get(name) in (None, '')]
    if missing:
        raise InvalidConfigError(f"Missing required properties: {', '.join(missing)}")
    
    kind = ProxyKind.parse(properties.get('protocol') or DEFAULT_PROTOCOL)
    local_port = parse_port('local_port', properties['local_port'])
    remote_port = parse_port('remote_port', properties['remote_port'], allow_zero=True)
    
    try:
        host, folded_port = split_host_port(str(properties['remote_address']))
    except ValueError:
        raise InvalidConfigError(
            f"remote_address has a malformed port: {properties['remote_address']!r}"
        )
    if not host:
        raise InvalidConfigError("remote_address cannot be empty")
    
    if properties.get('server_port') not in (None, ''):
        server_port = parse_port('server_port', properties['server_port'])
    elif folded_port is not None:
        server_port = parse_port('remote_address port', folded_port)
    else:
        server_port = DEFAULT_SERVER_PORT
    
    token = properties.get('token')
    common = CommonConfig(
        server_host=host,
        server_port=server_port,
        auth_token='' if token is None else str(token),
    )
    
    local_address = _optional_str(properties, 'local_address') or DEFAULT_LOCAL_ADDRESS
    store = ConfigurationStore(common=common)
    if kind is ProxyKind.TCP:
        proxy = TcpProxyConfig(
            local_port=local_port,
            remote_port=remote_port,
            local_address=local_address,
        )
    else:
        proxy = WebProxyConfig(
            local_port=local_port,
            kind=kind,
            local_address=local_address,
            custom_domains=_optional_str(properties, 'custom_domains'),
            subdomain=_optional_str(properties, 'subdomain'),
        )
    store.add_proxy(DEFAULT_PROXY_NAME, proxy)
    
    logger.debug(f"Loaded {kind.value} proxy {DEFAULT_PROXY_NAME!r} -> "
                 f"{local_address}:{local_port}, server {common.server_address}")
    return store
