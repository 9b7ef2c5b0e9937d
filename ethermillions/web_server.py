"""FastAPI gateway exposing the client's view state to a presentation layer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .blockchain.client import LotteryContract
from .blockchain.contracts import CONTRACT_ADDRESS, TICKET_PRICE_ETH
from .lottery.controller import LotteryClient
from .lottery.models import TransactionResult, ViewState
from .utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def serialize_result(result: TransactionResult) -> Dict[str, Any]:
    return {
        "action": result.action.value,
        "status": result.status.value,
        "ok": result.ok,
        "txHash": result.tx_hash,
        "reason": result.reason,
        "failure": result.failure.value if result.failure else None,
        "error": type(result.error).__name__ if result.error else None,
        "events": [
            {
                "name": event.name,
                "args": {key: value if isinstance(value, (int, str)) else list(value) for key, value in event.args.items()},
                "blockNumber": event.block_number,
                "transactionHash": event.transaction_hash,
            }
            for event in result.events
        ],
    }


class LotteryWebServer:
    """HTTP and WebSocket gateway for the lottery client."""

    def __init__(
        self,
        config: Dict[str, Any],
        client: LotteryClient,
        binding: Optional[LotteryContract] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.binding = binding

        self.app = FastAPI(
            title="EtherMillions Client API",
            description="Wallet session and lottery contract state for the EtherMillions front-end",
            version="1.0.0",
        )

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._broadcast_queue: Optional[asyncio.Queue[Dict[str, Any]]] = None
        self._broadcast_task: Optional[asyncio.Task[None]] = None
        self._websockets: Set[WebSocket] = set()
        self._listener_registered = False

        self._setup_middleware()
        self._setup_routes()

    # ------------------------------------------------------------------
    # FastAPI scaffolding
    # ------------------------------------------------------------------
    def _setup_middleware(self) -> None:
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_routes(self) -> None:
        @self.app.get("/api/health")
        async def health_check() -> Dict[str, Any]:
            blockchain_health: Dict[str, Any] = {"status": "unavailable"}
            if self.binding is not None:
                blockchain_health = await self.binding.health_check()
            return {
                "status": "ok",
                "timestamp": _now(),
                "components": {
                    "web": True,
                    "blockchain": blockchain_health,
                    "polling": self.client.synchronizer.is_polling,
                },
            }

        @self.app.get("/api/state")
        async def get_state() -> Dict[str, Any]:
            return self._state_payload(self.client.view_state())

        @self.app.post("/api/wallet/connect")
        async def connect_wallet() -> Dict[str, Any]:
            connected = await self.client.connect()
            return {"connected": connected, "state": self._state_payload(self.client.view_state())}

        @self.app.post("/api/tickets")
        async def buy_ticket() -> Dict[str, Any]:
            result = await self.client.buy_ticket()
            return {"result": serialize_result(result), "state": self._state_payload(self.client.view_state())}

        @self.app.post("/api/draw")
        async def draw_numbers() -> Dict[str, Any]:
            result = await self.client.draw_numbers()
            return {"result": serialize_result(result), "state": self._state_payload(self.client.view_state())}

        @self.app.post("/api/refresh")
        async def refresh() -> Dict[str, Any]:
            await self.client.refresh()
            return self._state_payload(self.client.view_state())

        @self.app.websocket("/ws/lottery")
        async def websocket_endpoint(websocket: WebSocket) -> None:
            await websocket.accept()
            self._websockets.add(websocket)
            logger.info("WebSocket client connected (%s total)", len(self._websockets))
            try:
                await websocket.send_json({"type": "snapshot", "payload": self._state_payload(self.client.view_state())})
                while True:
                    try:
                        await websocket.receive_text()
                    except WebSocketDisconnect:
                        break
            finally:
                self._websockets.discard(websocket)
                logger.info("WebSocket client disconnected (%s remaining)", len(self._websockets))

    def _state_payload(self, view: ViewState) -> Dict[str, Any]:
        payload = view.to_dict()
        payload["contractAddress"] = CONTRACT_ADDRESS
        payload["ticketPriceEth"] = TICKET_PRICE_ETH
        return payload

    # ------------------------------------------------------------------
    # Lifecycle management
    # ------------------------------------------------------------------
    async def start(self, host: str = "127.0.0.1", port: int = 6080) -> None:
        import uvicorn

        logger.info("Starting lottery client web server on %s:%s", host, port)
        self._loop = asyncio.get_running_loop()
        if self._broadcast_queue is None:
            self._broadcast_queue = asyncio.Queue()
        self._register_listener()
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._broadcast_loop(), name="lottery-web-broadcast")

        config = uvicorn.Config(self.app, host=host, port=port, log_level="info", access_log=True)
        server = uvicorn.Server(config)
        try:
            await server.serve()
        finally:
            logger.info("Lottery client web server stopped")

    async def stop(self) -> None:
        logger.info("Stopping lottery client web server")
        if self._broadcast_task:
            self._broadcast_task.cancel()
            try:
                await self._broadcast_task
            except asyncio.CancelledError:
                pass
            self._broadcast_task = None
        for websocket in list(self._websockets):
            try:
                await websocket.close(code=1001, reason="Server shutdown")
            except Exception as exc:  # pragma: no cover
                logger.debug("Error closing websocket: %s", exc)
        self._websockets.clear()

    # ------------------------------------------------------------------
    # View listener & broadcasting
    # ------------------------------------------------------------------
    def _register_listener(self) -> None:
        if self._listener_registered:
            return
        self.client.add_listener(self._enqueue_broadcast)
        self._listener_registered = True

    def _enqueue_broadcast(self, view: ViewState) -> None:
        if not self._broadcast_queue or not self._loop:
            return
        message = {"type": "view_update", "payload": self._state_payload(view), "timestamp": _now()}
        try:
            self._loop.call_soon_threadsafe(self._broadcast_queue.put_nowait, message)
        except RuntimeError:  # pragma: no cover - loop already closing
            logger.debug("Failed to enqueue view update")

    async def _broadcast_loop(self) -> None:
        assert self._broadcast_queue is not None
        while True:
            try:
                message = await self._broadcast_queue.get()
                await self._broadcast_to_clients(message)
            except asyncio.CancelledError:
                break
            except Exception as exc:  # pragma: no cover
                logger.exception("Broadcast loop error: %s", exc)

    async def _broadcast_to_clients(self, message: Dict[str, Any]) -> None:
        to_remove: List[WebSocket] = []
        for websocket in list(self._websockets):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.debug("WebSocket send failed: %s", exc)
                to_remove.append(websocket)
        for websocket in to_remove:
            self._websockets.discard(websocket)
