"""
Lottery contract identity and ABI loading
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from web3 import Web3

from ..utils.logger import get_logger

logger = get_logger(__name__)

CONTRACT_ADDRESS = "0x1234567890123456789012345678901234567890"
TICKET_PRICE_ETH = "0.01"

CONTRACT_NAME = "EtherMillions"
EVENT_NAMES = ("TicketPurchased", "NumbersDrawn")

ABI_DIR = Path(__file__).parent.parent / "contracts" / "abi"


@lru_cache(maxsize=None)
def _read_abi(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def load_contract_abi(contract_name: str = CONTRACT_NAME) -> List[Dict[str, Any]]:
    """Load the ABI shipped with the package"""
    abi_file = ABI_DIR / f"{contract_name}.abi"
    if not abi_file.is_file():
        raise FileNotFoundError(f"ABI file not found: {abi_file}")

    abi = json.loads(_read_abi(abi_file))
    if not isinstance(abi, list):
        raise ValueError(f"Invalid ABI file {abi_file}: expected a list")
    logger.debug(f"Loaded {contract_name} ABI with {len(abi)} items")
    return abi


def ticket_price_wei() -> int:
    """Fixed ticket price converted to wei"""
    return int(Web3.to_wei(TICKET_PRICE_ETH, "ether"))
