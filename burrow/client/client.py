# STATUS: done
"""
Burrow Tunnel Client
Connects to the rendezvous server over an encrypted channel and relays
traffic to a named local service.
"""

import sys
import socket
import threading
import argparse
import logging
from typing import Any, Dict, Optional

from ..common.channel import EncryptedChannel, ChannelError, send_iv
from ..common.config import ConfigurationStore, ConfigError, ProxyNotFoundError
from ..common.constants import DEFAULT_PROXY_NAME, RECV_BUFFER_SIZE
from ..common.crypto import ChannelCipher, generate_iv
from ..common.loader import load
from ..common.utils import setup_logging, load_config, Stats


class TunnelClient:
    """Tunnel client that relays server connections to local services."""
    
    def __init__(self, store: ConfigurationStore, connect_timeout: float = 10.0):
        self.logger = logging.getLogger('burrow.client')
        self.store = store
        self.connect_timeout = connect_timeout
        self.stats = Stats()
        self.running = False
        self._lock = threading.Lock()
        self._active = None
    
    def connect_to_server(self) -> EncryptedChannel:
        """
        Connect to the server and set up the encrypted channel.
        
        A fresh IV is generated for every connection and sent ahead of the
        ciphertext, so key and IV are never reused across connections.
        
        Returns:
            EncryptedChannel: Channel keyed by the shared token
            
        Raises:
            ChannelError: If the connection fails
        """
        host, port = self.store.common.server_host, self.store.common.server_port
        self.logger.info(f"Connecting to server {host}:{port}")
        
        try:
            sock = socket.create_connection((host, port), timeout=self.connect_timeout)
        except OSError as e:
            raise ChannelError(f"Failed to connect to server {host}:{port}: {e}")
        sock.settimeout(None)
        
        try:
            iv = generate_iv()
            send_iv(sock, iv)
            channel = EncryptedChannel(sock, ChannelCipher(self.store.auth_token(), iv))
        except Exception:
            sock.close()
            raise
        
        self.logger.info("Connected to server")
        return channel
    
    def open_local(self, name: str) -> Optional[socket.socket]:
        """
        Dial the local service behind a proxy name.
        
        Returns:
            socket.socket: Connected socket, or None if the proxy is unknown
            
        Raises:
            ChannelError: If the local service refuses the connection
        """
        try:
            proxy = self.store.resolve(name)
        except ProxyNotFoundError as e:
            self.logger.warning(f"Rejecting connection: {e}")
            self.stats.record_rejected()
            return None
        
        self.logger.debug(f"Dialing {proxy.kind.value} proxy {name!r} at "
                          f"{proxy.local_address}:{proxy.local_port}")
        try:
            return socket.create_connection(
                (proxy.local_address, proxy.local_port), timeout=self.connect_timeout
            )
        except OSError as e:
            raise ChannelError(
                f"Failed to connect to local service {proxy.local_address}:{proxy.local_port}: {e}"
            )
    
    def local_to_remote_loop(self, local_sock: socket.socket, channel: EncryptedChannel):
        """
        Read from the local service, encrypt, and send to the server.
        Sole user of the channel's encrypt half.
        """
        try:
            while True:
                data = local_sock.recv(RECV_BUFFER_SIZE)
                if not data:
                    break
                channel.send(data)
                self.stats.record_out(len(data))
        except (ChannelError, OSError) as e:
            self.logger.debug(f"Local->Remote stopped: {e}")
        finally:
            self._shutdown_tunnel(channel, local_sock)
    
    def remote_to_local_loop(self, channel: EncryptedChannel, local_sock: socket.socket):
        """
        Receive from the server, decrypt, and write to the local service.
        Sole user of the channel's decrypt half.
        """
        try:
            while True:
                data = channel.recv(RECV_BUFFER_SIZE)
                if not data:
                    break
                local_sock.sendall(data)
                self.stats.record_in(len(data))
        except (ChannelError, OSError) as e:
            self.logger.debug(f"Remote->Local stopped: {e}")
        finally:
            self._shutdown_tunnel(channel, local_sock)
    
    def _shutdown_tunnel(self, channel: EncryptedChannel, local_sock: socket.socket):
        """Shut down both sockets so the other loop's blocking recv returns."""
        channel.shutdown()
        try:
            local_sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    
    def relay(self, channel: EncryptedChannel, local_sock: socket.socket):
        """Relay both directions until either side closes."""
        local_sock.settimeout(None)
        outbound = threading.Thread(
            target=self.local_to_remote_loop, args=(local_sock, channel),
            name="Local->Remote", daemon=True
        )
        inbound = threading.Thread(
            target=self.remote_to_local_loop, args=(channel, local_sock),
            name="Remote->Local", daemon=True
        )
        with self._lock:
            self._active = (channel, local_sock)
        try:
            outbound.start()
            inbound.start()
            outbound.join()
            inbound.join()
        finally:
            with self._lock:
                self._active = None
    
    def serve(self, name: str = DEFAULT_PROXY_NAME) -> bool:
        """
        Open one tunnel for a proxy and relay it until it closes.
        
        Returns:
            bool: False if the proxy could not be resolved
        """
        channel = self.connect_to_server()
        with channel:
            local_sock = self.open_local(name)
            if local_sock is None:
                return False
            try:
                self.relay(channel, local_sock)
            finally:
                local_sock.close()
        self.logger.info(str(self.stats))
        return True
    
    def start(self, name: str = DEFAULT_PROXY_NAME):
        """Serve tunnels for a proxy until stopped."""
        self.running = True
        
        self.logger.info(f"Starting Burrow client for proxy {name!r}")
        while self.running:
            try:
                if not self.serve(name):
                    break
            except ChannelError as e:
                self.logger.error(f"Tunnel error: {e}")
                break
        
        self.logger.info(f"Final stats: {self.stats}")
    
    def stop(self):
        """Stop serving and tear down the tunnel being relayed, if any."""
        self.running = False
        with self._lock:
            active = self._active
        if active is not None:
            self._shutdown_tunnel(*active)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Burrow reverse tunnel client')
    parser.add_argument('--config', '-c',
                        help='Path to JSON properties file')
    parser.add_argument('--protocol', '-p',
                        help='Proxy protocol: tcp, http or https (default: tcp)')
    parser.add_argument('--local-port', '-l', dest='local_port',
                        help='Local service port')
    parser.add_argument('--remote-addr', '-r', dest='remote_address',
                        help='Server address, host[:port]')
    parser.add_argument('--remote-port', '-s', dest='remote_port',
                        help='Port exposed on the server')
    parser.add_argument('--token', '-t',
                        help='Shared token (default: empty)')
    parser.add_argument('--custom-domains', dest='custom_domains',
                        help='Custom domains for http/https proxies')
    parser.add_argument('--subdomain',
                        help='Subdomain for http/https proxies')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def collect_properties(args: argparse.Namespace) -> Dict[str, Any]:
    """Merge file properties with command-line values, the latter winning."""
    properties = load_config(args.config) if args.config else {}
    for name in ('protocol', 'local_port', 'remote_address', 'remote_port',
                 'token', 'custom_domains', 'subdomain'):
        value = getattr(args, name)
        if value is not None:
            properties[name] = value
    return properties


def main(argv=None) -> int:
    """Main entry point for the tunnel client."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level)
    
    try:
        store = load(collect_properties(args))
    except (ConfigError, FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    
    client = TunnelClient(store)
    try:
        client.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    return 0


if __name__ == '__main__':
    sys.exit(main())
