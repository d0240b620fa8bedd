#!/usr/bin/env python3
"""
Script to generate an RSA key pair for JWT signing.
Set the printed values in the environment so tokens survive restarts.
"""

import os
import sys

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.auth import generate_key_pair


if __name__ == "__main__":
    private_key, public_key = generate_key_pair()

    print("=== JWT PRIVATE KEY ===")
    print(private_key)
    print("\n=== JWT PUBLIC KEY ===")
    print(public_key)

    print("\n=== Environment Variables ===")
    newline = "\\n"
    print(f'JWT_PRIVATE_KEY="{private_key.replace(chr(10), newline)}"')
    print(f'JWT_PUBLIC_KEY="{public_key.replace(chr(10), newline)}"')
