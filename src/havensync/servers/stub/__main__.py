"""
Entry point for the HavenMind stub API.

Usage:
    python -m havensync.servers.stub
    python -m havensync.servers.stub --port 8820 --session dev-cookie
"""

import asyncio
from .server import main

if __name__ == "__main__":
    asyncio.run(main())
