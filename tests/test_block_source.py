"""
Tests for RpcBlockSource with the web3 client mocked out
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from hexbytes import HexBytes
from web3.exceptions import BlockNotFound

from tips_explorer.block_source import RpcBlockSource
from tips_explorer.errors import UpstreamUnavailableError
from tips_explorer.parsers import BlockParser, TransactionParser
from tips_explorer.utils import hex_to_str


def _mock_w3(**eth_methods):
    w3 = MagicMock()
    for name, mock in eth_methods.items():
        setattr(w3.eth, name, mock)
    return w3


async def test_get_block_by_hash_requests_full_transactions():
    source = RpcBlockSource(["http://localhost:8545"])
    raw_block = {"hash": HexBytes("0x" + "ab" * 32), "number": 1}
    get_block = AsyncMock(return_value=raw_block)
    source.w3 = _mock_w3(get_block=get_block)

    assert await source.get_block_by_hash("0xabc") == raw_block
    get_block.assert_awaited_once_with("0xabc", full_transactions=True)


async def test_missing_block_returns_none():
    source = RpcBlockSource(["http://localhost:8545"])
    source.w3 = _mock_w3(get_block=AsyncMock(side_effect=BlockNotFound("missing")))

    assert await source.get_block_by_hash("0xabc") is None
    assert await source.get_block_by_number(5) is None


async def test_rpc_failure_raises_and_rotates_without_retry():
    source = RpcBlockSource(["http://rpc-a:8545", "http://rpc-b:8545"])
    get_block = AsyncMock(side_effect=ConnectionError("refused"))
    source.w3 = _mock_w3(get_block=get_block)

    with pytest.raises(UpstreamUnavailableError):
        await source.get_block_by_hash("0xabc")

    assert get_block.await_count == 1
    assert source.current_rpc_index == 1


async def test_latest_block_number():
    source = RpcBlockSource(["http://localhost:8545"])
    source.w3 = _mock_w3(get_block_number=AsyncMock(return_value=1234))

    assert await source.get_latest_block_number() == 1234


def test_requires_an_rpc_url():
    with pytest.raises(ValueError):
        RpcBlockSource([])


def test_parsers_handle_web3_values():
    raw_block = {
        "hash": HexBytes("0x" + "ab" * 32),
        "number": 7,
        "timestamp": 1_700_000_000,
        "gasUsed": 21000,
        "gasLimit": 30_000_000,
    }
    raw_tx = {
        "hash": HexBytes("0x" + "cd" * 32),
        "from": "0x00000000000000000000000000000000000000aA",
        "to": None,
        "gas": 53000,
    }

    assert BlockParser.is_complete(raw_block)
    assert BlockParser.parse_raw(raw_block)["hash"] == "0x" + "ab" * 32
    parsed_tx = TransactionParser.parse_raw(raw_tx, 3)
    assert parsed_tx == {
        "hash": "0x" + "cd" * 32,
        "from_address": "0x00000000000000000000000000000000000000aA",
        "to_address": None,
        "gas_used": 53000,
        "index": 3,
    }


def test_hex_to_str():
    assert hex_to_str(HexBytes("0x0102")) == "0x0102"
    assert hex_to_str("0xabc") == "0xabc"
    assert hex_to_str("abc") == "0xabc"
    with pytest.raises(TypeError):
        hex_to_str(12)
