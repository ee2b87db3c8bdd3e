from ..utils import hex_to_str

class TransactionParser:
    @staticmethod
    def parse_raw(raw_tx: dict, index: int) -> dict:
        """Parse a full transaction object from eth_getBlockByHash

        The position in the block's transaction list is authoritative for
        the index, so callers pass it explicitly.
        """
        to_address = raw_tx.get('to')
        return {
            'hash': hex_to_str(raw_tx['hash']),
            'from_address': str(raw_tx['from']),
            'to_address': str(to_address) if to_address is not None else None,  # None for contract creation
            # The RPC block carries the gas limit, receipts are not fetched
            'gas_used': raw_tx['gas'],
            'index': index,
        }
