#!/usr/bin/env python3
# STATUS: done
"""
Burrow - Configuration Generator
Writes a client properties file for the tunnel client.
"""

import os
import argparse

from .common.utils import generate_config_template, save_config


def main():
    """Generate a client properties file."""
    parser = argparse.ArgumentParser(description='Generate a Burrow client configuration file')
    parser.add_argument('--output-dir', '-o', default='config',
                       help='Output directory for the config file')
    parser.add_argument('--protocol', '-p', default='tcp', choices=['tcp', 'http', 'https'],
                       help='Proxy protocol')
    parser.add_argument('--remote-addr', '-r', dest='remote_address',
                       help='Server address, host[:port]')
    parser.add_argument('--token', '-t', default='',
                       help='Shared token')
    
    args = parser.parse_args()
    
    os.makedirs(args.output_dir, exist_ok=True)
    
    config = generate_config_template(args.protocol)
    config['token'] = args.token
    if args.remote_address:
        config['remote_address'] = args.remote_address
    
    config_path = os.path.join(args.output_dir, 'client.json')
    save_config(config, config_path)
    
    print("Burrow configuration file generated:")
    print(f"  Client config: {config_path}")
    print("")
    print("Next steps:")
    print(f"1. Edit local_port and remote_port in {config_path}")
    print(f"2. Start client: burrow-client --config {config_path}")


if __name__ == '__main__':
    main()
