from ..utils import hex_to_str

class BlockParser:
    @staticmethod
    def is_complete(raw_block: dict) -> bool:
        # Pending blocks come back without a hash or number
        return raw_block.get('hash') is not None and raw_block.get('number') is not None

    @staticmethod
    def parse_raw(raw_block: dict) -> dict:
        return {
            'hash': hex_to_str(raw_block['hash']),
            'number': raw_block['number'],
            'timestamp': raw_block['timestamp'],
            'gas_used': raw_block['gasUsed'],
            'gas_limit': raw_block['gasLimit'],
        }

class BlockSummaryParser:
    @staticmethod
    def parse_raw(raw_block: dict) -> dict:
        return {
            'hash': hex_to_str(raw_block['hash']),
            'number': raw_block['number'],
            'timestamp': raw_block['timestamp'],
            'transaction_count': len(raw_block.get('transactions') or []),
        }
