#!/usr/bin/env python3
"""
EtherMillions Lottery Client Application

Entry point that wires the wallet, the contract binding and the client
controller together and serves the resulting view state over HTTP/WebSocket.
"""

import asyncio
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from .blockchain.client import LotteryContract, create_web3
from .lottery.controller import LotteryClient
from .utils.common import shorten_eth_address
from .utils.config import load_config
from .utils.logger import get_logger
from .wallet.provider import KeystoreWallet
from .web_server import LotteryWebServer

logger = get_logger(__name__)


class LotteryClientApp:
    """Owns the client instance and the web gateway, and handles shutdown."""

    def __init__(self):
        load_dotenv(Path.cwd() / '.env')
        self.config = load_config()
        self.client = None
        self.web_server = None
        self.binding = None
        self.running = True

        logger.info("🎰 EtherMillions client initialized")

    def _handle_signal(self, signum, frame):
        logger.info(f"📡 Received signal {signum}, initiating graceful shutdown...")
        self.running = False

    def _display_config_summary(self):
        """Display key configuration options for diagnostics."""
        blockchain_config = self.config.get('blockchain', {})
        server_config = self.config.get('server', {})
        logger.info("=" * 60)
        logger.info(f"🔗 RPC URL: {blockchain_config.get('rpc_url')}")
        logger.info(f"🆔 Chain ID: {blockchain_config.get('chain_id')}")
        logger.info(f"📄 Contract: {self.binding.address if self.binding else 'Not bound'}")
        logger.info(f"⏱️  Refresh Interval: {self.config.get('client', {}).get('refresh_interval')}s")
        logger.info(f"🌍 Server: {server_config.get('host')}:{server_config.get('port')}")
        logger.info("=" * 60)

    async def initialize(self):
        """Create the RPC connection, wallet, contract binding, controller and web server."""
        w3 = create_web3(self.config)
        wallet = KeystoreWallet.from_config(w3, self.config)
        self.binding = LotteryContract.from_config(w3, self.config)
        self.client = LotteryClient(wallet, self.binding, self.config)
        self.web_server = LotteryWebServer(self.config, self.client, self.binding)
        self._display_config_summary()

    async def start(self):
        """Start services and run until a shutdown signal is received."""
        try:
            await self.initialize()

            if await self.client.connect():
                account = self.client.session.account or ""
                logger.info(f"👛 Connected as {shorten_eth_address(account)} (owner: {self.client.role.is_owner})")
            else:
                logger.warning(f"⚠️  {self.client.status_message}")

            server_config = self.config.get('server', {})
            host = server_config.get('host', '127.0.0.1')
            port = int(server_config.get('port', 6080))
            server_task = asyncio.create_task(self.web_server.start(host=host, port=port))

            while self.running and not server_task.done():
                await asyncio.sleep(1)

            if server_task.done() and server_task.exception():
                raise server_task.exception()
            server_task.cancel()
            logger.info("🛑 Shutdown signal received, stopping client...")
        finally:
            await self.stop()

    async def stop(self):
        """Stop all services. Safe to call more than once."""
        if self.web_server:
            try:
                await self.web_server.stop()
            except Exception as e:
                logger.error(f"❌ Error stopping web server: {e}")
        if self.client:
            try:
                await self.client.shutdown()
            except Exception as e:
                logger.error(f"❌ Error shutting down client: {e}")
        logger.info("🟢 EtherMillions client stopped")


async def main():
    """Main entry point for the EtherMillions client"""
    app = LotteryClientApp()

    signal.signal(signal.SIGINT, app._handle_signal)
    signal.signal(signal.SIGTERM, app._handle_signal)

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("🛑 Client interrupted by user")
    except Exception as e:
        logger.exception(f"❌ Client failed: {e}")
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
