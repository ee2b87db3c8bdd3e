from .blocks import (
    BlockParser,
    BlockSummaryParser,
)
from .transactions import TransactionParser
