# STATUS: done
"""
Proxy configuration model for the Burrow tunnel client.
Holds the common server settings and the named proxy declarations, and
resolves a proxy name to the descriptor the transport layer dials.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Union

from .constants import DEFAULT_LOCAL_ADDRESS, DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT


class ConfigError(Exception):
    """Base class for configuration failures."""
    pass


class ProxyNotFoundError(ConfigError):
    """Raised when a proxy name is unknown. Recoverable per request."""
    
    def __init__(self, name: str):
        super().__init__(f"No such proxy: {name}")
        self.name = name


class InvalidConfigError(ConfigError):
    """Raised for malformed or incomplete configuration. Fatal at startup."""
    pass


class ProxyKind(Enum):
    TCP = "tcp"
    HTTP = "http"
    HTTPS = "https"
    
    @property
    def is_web(self) -> bool:
        return self is not ProxyKind.TCP
    
    @classmethod
    def parse(cls, value: str) -> 'ProxyKind':
        """Map a protocol name to a kind, raising InvalidConfigError if unknown."""
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise InvalidConfigError(f"Unsupported protocol: {value!r}")


@dataclass(frozen=True)
class ProxyDescriptor:
    """Where to dial for a proxy and which protocol family it belongs to."""
    local_address: str
    local_port: int
    kind: ProxyKind


@dataclass(frozen=True)
class CommonConfig:
    """Rendezvous server endpoint and the shared token."""
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT
    auth_token: str = ""
    
    @property
    def server_address(self) -> str:
        if ":" in self.server_host:
            return f"[{self.server_host}]:{self.server_port}"
        return f"{self.server_host}:{self.server_port}"


@dataclass(frozen=True)
class TcpProxyConfig:
    """Raw TCP forward: the server listens on remote_port."""
    local_port: int
    remote_port: int
    local_address: str = DEFAULT_LOCAL_ADDRESS
    
    @property
    def kind(self) -> ProxyKind:
        return ProxyKind.TCP


@dataclass(frozen=True)
class WebProxyConfig:
    """Virtual-host forward addressed by custom domains and/or a subdomain."""
    local_port: int
    kind: ProxyKind = ProxyKind.HTTP
    local_address: str = DEFAULT_LOCAL_ADDRESS
    custom_domains: Optional[str] = None
    subdomain: Optional[str] = None
    
    def validate(self) -> bool:
        """Return False when the proxy has no hostname on the server."""
        return self.custom_domains is not None or self.subdomain is not None


ProxyConfig = Union[TcpProxyConfig, WebProxyConfig]


@dataclass
class ConfigurationStore:
    """
    Common config plus proxies keyed by name.
    
    Built once at startup and read-only afterwards. A reload must build a new
    store and swap the reference, never mutate a live one.
    """
    common: CommonConfig = field(default_factory=CommonConfig)
    proxies: Dict[str, ProxyConfig] = field(default_factory=dict)
    
    def add_proxy(self, name: str, proxy: ProxyConfig) -> None:
        """
        Register a named proxy.
        
        Raises:
            InvalidConfigError: If the name is taken or a web proxy has no hostname
        """
        if not name:
            raise InvalidConfigError("Proxy name cannot be empty")
        if name in self.proxies:
            raise InvalidConfigError(f"Duplicate proxy name: {name}")
        if isinstance(proxy, WebProxyConfig) and not proxy.validate():
            raise InvalidConfigError(
                f"Proxy {name} needs custom_domains or subdomain"
            )
        self.proxies[name] = proxy
    
    def resolve(self, name: str) -> ProxyDescriptor:
        """
        Resolve a proxy name to its local endpoint.
        
        Raises:
            ProxyNotFoundError: If no proxy has that name
        """
        proxy = self.proxies.get(name)
        if proxy is None:
            raise ProxyNotFoundError(name)
        return ProxyDescriptor(proxy.local_address, proxy.local_port, proxy.kind)
    
    def server_address(self) -> str:
        return self.common.server_address
    
    def auth_token(self) -> str:
        return self.common.auth_token
    
    def __contains__(self, name: str) -> bool:
        return name in self.proxies
    
    def __iter__(self) -> Iterator[str]:
        return iter(self.proxies)
    
    def __len__(self) -> int:
        return len(self.proxies)
